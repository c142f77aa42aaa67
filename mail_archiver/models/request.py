from typing import Optional

from pydantic import BaseModel, Field


class ArchiveRequest(BaseModel):
    """Archive every message carrying label_id, then move it to the trash."""

    label_id: str
    max_results: Optional[int] = Field(default=None, ge=1)


class LabelRequest(BaseModel):
    label_id: str


class LabelResponse(BaseModel):
    message_id: str
    label_id: str
    status: str
