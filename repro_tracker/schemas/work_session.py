from pydantic import BaseModel


class StartWorkRequest(BaseModel):
    file_id: int


class ChangeFileRequest(BaseModel):
    file_id: int
