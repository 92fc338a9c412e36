from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class ReturnFile(BaseModel):
    id: int = Field(..., example=1, description="File identification number")
    owner_id: int = Field(..., example=1, description="Identification number of the owning user")
    filename: str = Field(..., example="report.pdf", description="File name provided by the user")
    size: int = Field(..., example=2048, description="File size in bytes")
    content_type: str = Field(..., example="application/pdf", description="Media type supplied at upload")
    upload_time: datetime = Field(..., example="2025-09-03T12:34:56Z", description="Time at which the file was transferred")

    class Config:
        from_attributes = True


class FileList(BaseModel):
    files: List[ReturnFile] = Field(default_factory=list, description="Files owned by the logged-in user")
