from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta
from typing import Any, Iterable, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from repro_tracker.core.periods import to_naive_utc, utc_now
from repro_tracker.models.file import File
from repro_tracker.models.time_entry import TimeEntry
from repro_tracker.models.user import User


def _floor_second(value: datetime) -> datetime:
    return value.replace(microsecond=0)


def clipped_bounds(
    started_at: datetime,
    ended_at: Optional[datetime],
    window_from: datetime,
    window_to: datetime,
    *,
    now: datetime,
    include_open: bool,
) -> Optional[tuple[datetime, datetime]]:
    """
    Part of [started_at, ended_at) that falls inside [window_from, window_to),
    at whole-second precision. Open intervals run to min(now, window_to) and
    only count when include_open is set. None when nothing overlaps.
    """
    if ended_at is None:
        if not include_open:
            return None
        end = min(_floor_second(now), window_to)
    else:
        end = min(_floor_second(ended_at), window_to)

    start = max(_floor_second(started_at), window_from)
    if end <= start:
        return None
    return start, end


def clip_seconds(
    started_at: datetime,
    ended_at: Optional[datetime],
    window_from: datetime,
    window_to: datetime,
    *,
    now: datetime,
    include_open: bool = False,
) -> int:
    bounds = clipped_bounds(
        started_at, ended_at, window_from, window_to, now=now, include_open=include_open
    )
    if bounds is None:
        return 0
    return int((bounds[1] - bounds[0]).total_seconds())


def split_by_day(start: datetime, end: datetime) -> list[tuple[str, int]]:
    """Seconds of [start, end) per UTC calendar day."""
    out = []
    cursor = start
    while cursor < end:
        next_midnight = cursor.replace(hour=0, minute=0, second=0, microsecond=0) + timedelta(days=1)
        chunk_end = min(next_midnight, end)
        out.append((cursor.date().isoformat(), int((chunk_end - cursor).total_seconds())))
        cursor = chunk_end
    return out


def _bucket() -> dict[str, int]:
    return {"total_seconds": 0, "entry_count": 0}


def summarize_entries(
    entries: Iterable[Any],
    window_from: datetime,
    window_to: datetime,
    *,
    now: Optional[datetime] = None,
    include_open: bool = False,
    include_entries: bool = False,
) -> dict[str, Any]:
    """
    Pure aggregation over TimeEntry-like rows (user_id, file_id,
    department_id, started_at, ended_at).

    Every grouping is a partition of the same clipped seconds, so the
    per-user, per-file, per-department and per-day totals each sum to
    total_seconds.
    """
    now = to_naive_utc(now) or utc_now()

    total_seconds = 0
    entry_count = 0
    by_user: dict[int, dict[str, int]] = defaultdict(_bucket)
    by_file: dict[int, dict[str, int]] = defaultdict(_bucket)
    by_department: dict[int, dict[str, int]] = defaultdict(_bucket)
    by_day: dict[str, int] = defaultdict(int)
    rows = []

    for e in entries:
        bounds = clipped_bounds(
            e.started_at,
            e.ended_at,
            window_from,
            window_to,
            now=now,
            include_open=include_open,
        )
        if bounds is None:
            continue

        seconds = int((bounds[1] - bounds[0]).total_seconds())
        total_seconds += seconds
        entry_count += 1

        for bucket in (
            by_user[int(e.user_id)],
            by_file[int(e.file_id)],
            by_department[int(e.department_id)],
        ):
            bucket["total_seconds"] += seconds
            bucket["entry_count"] += 1

        for day, day_seconds in split_by_day(bounds[0], bounds[1]):
            by_day[day] += day_seconds

        if include_entries:
            rows.append(
                {
                    "id": e.id,
                    "user_id": int(e.user_id),
                    "file_id": int(e.file_id),
                    "started_at": e.started_at.isoformat(),
                    "ended_at": None if e.ended_at is None else e.ended_at.isoformat(),
                    "is_active": e.ended_at is None,
                    "seconds_in_window": seconds,
                }
            )

    result = {
        "from": window_from.isoformat(),
        "to": window_to.isoformat(),
        "include_open": bool(include_open),
        "total_seconds": total_seconds,
        "total_minutes": total_seconds // 60,
        "total_hours": round(total_seconds / 3600, 2),
        "entry_count": entry_count,
        "by_user": [
            {"user_id": k, **v} for k, v in sorted(by_user.items())
        ],
        "by_file": [
            {"file_id": k, **v} for k, v in sorted(by_file.items())
        ],
        "by_department": [
            {"department_id": k, **v} for k, v in sorted(by_department.items())
        ],
        "by_day": [
            {"day": k, "total_seconds": v} for k, v in sorted(by_day.items())
        ],
    }
    if include_entries:
        result["entries"] = sorted(rows, key=lambda r: r["started_at"])
    return result


def weighted_breakdown(
    by_file: Iterable[dict[str, Any]],
    file_attrs: dict[int, tuple[Optional[str], Optional[float]]],
) -> dict[str, Any]:
    """
    Difficulty-weighted view of per-file seconds.

    file_attrs maps file_id -> (file_type, difficulty_weight); a missing
    weight counts as 1. weighted_score is the sum of hours * weight and
    productivity is weighted_score / hours. Untyped files count toward the
    score but have no by_file_type bucket.
    """
    total_seconds = 0
    weighted_hours = 0.0
    by_type: dict[str, dict[str, float]] = defaultdict(
        lambda: {"total_seconds": 0, "weighted_score": 0.0}
    )

    for row in by_file:
        file_type, weight = file_attrs.get(row["file_id"], (None, None))
        weight = 1.0 if weight is None else float(weight)
        seconds = row["total_seconds"]
        weighted = seconds / 3600 * weight

        total_seconds += seconds
        weighted_hours += weighted
        if file_type is not None:
            by_type[file_type]["total_seconds"] += seconds
            by_type[file_type]["weighted_score"] += weighted

    total_hours = total_seconds / 3600
    return {
        "by_file_type": [
            {
                "file_type": k,
                "total_seconds": int(v["total_seconds"]),
                "weighted_score": round(v["weighted_score"], 2),
            }
            for k, v in sorted(by_type.items())
        ],
        "weighted_score": round(weighted_hours, 2),
        "productivity": round(weighted_hours / total_hours, 2) if total_hours > 0 else 0.0,
    }


def _label_users(db: Session, groups: list[dict[str, Any]]) -> None:
    ids = [g["user_id"] for g in groups]
    if not ids:
        return
    users = {u.id: u for u in db.query(User).filter(User.id.in_(ids)).all()}
    for g in groups:
        u = users.get(g["user_id"])
        g["full_name"] = None if u is None else u.full_name
        g["username"] = None if u is None else u.username


def _label_files(db: Session, groups: list[dict[str, Any]]) -> dict[int, File]:
    ids = [g["file_id"] for g in groups]
    if not ids:
        return {}
    files = {f.id: f for f in db.query(File).filter(File.id.in_(ids)).all()}
    for g in groups:
        f = files.get(g["file_id"])
        g["file_no"] = None if f is None else f.file_no
        g["customer_name"] = None if f is None else f.customer_name
    return files


def time_totals(
    *,
    db: Session,
    window_from: datetime,
    window_to: datetime,
    user_id: Optional[int] = None,
    department_id: Optional[int] = None,
    file_id: Optional[int] = None,
    include_open: bool = False,
    include_entries: bool = False,
    now: Optional[datetime] = None,
) -> dict[str, Any]:
    """
    Read-only reporting query over the time-entry ledger.

    Selection:
      started_at < window_to AND (ended_at IS NULL OR ended_at > window_from)
    department_id filters on the *user's* department, so department totals
    equal the sum of the per-user totals of that department's users.
    by_department is keyed on the department stamped on each entry (where
    the file was when the interval opened), not on the user's department.
    """
    window_from = to_naive_utc(window_from)
    window_to = to_naive_utc(window_to)

    q = db.query(TimeEntry).filter(TimeEntry.started_at < window_to)
    if include_open:
        q = q.filter(or_(TimeEntry.ended_at.is_(None), TimeEntry.ended_at > window_from))
    else:
        q = q.filter(TimeEntry.ended_at.isnot(None), TimeEntry.ended_at > window_from)

    if user_id is not None:
        q = q.filter(TimeEntry.user_id == int(user_id))
    if file_id is not None:
        q = q.filter(TimeEntry.file_id == int(file_id))
    if department_id is not None:
        q = q.join(User, User.id == TimeEntry.user_id).filter(User.department_id == int(department_id))

    rows = q.order_by(TimeEntry.started_at.asc(), TimeEntry.id.asc()).all()

    result = summarize_entries(
        rows,
        window_from,
        window_to,
        now=now,
        include_open=include_open,
        include_entries=include_entries,
    )
    _label_users(db, result["by_user"])
    files = _label_files(db, result["by_file"])
    result.update(
        weighted_breakdown(
            result["by_file"],
            {f.id: (f.file_type, f.difficulty_weight) for f in files.values()},
        )
    )
    result["filters"] = {
        "user_id": user_id,
        "department_id": department_id,
        "file_id": file_id,
    }
    return result
