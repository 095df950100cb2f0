from datetime import datetime

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String

from repro_tracker.database import Base


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)

    file_id = Column(Integer, ForeignKey("files.id"), nullable=False, index=True)
    action_type = Column(String, nullable=False, index=True)
    by_user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    from_department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)
    to_department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)

    payload = Column(JSON, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)
