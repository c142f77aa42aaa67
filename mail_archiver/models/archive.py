from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, computed_field

from mail_archiver.errors import FailureKind


class ArchivedMessageRecord(BaseModel):
    """Metadata of one archived message, written to metadata.json and returned to the caller."""

    model_config = ConfigDict(frozen=True)

    message_id: str
    subject: str
    sender: str
    received: datetime
    has_attachments: bool
    attachments: List[str] = []
    archive_dir: str = ""


class MessageStatus(str, Enum):
    ARCHIVED = "archived"
    ARCHIVED_PARTIAL = "archived_partial"
    FAILED = "failed"


class AttachmentFailure(BaseModel):
    """An attachment that could not be resolved and was left out of the archive."""

    filename: str
    kind: FailureKind
    reason: str


class MessageFailure(BaseModel):
    message_id: str
    kind: FailureKind
    reason: str


class MessageOutcome(BaseModel):
    """Final state of one listed message after the pipeline ran."""

    message_id: str
    status: MessageStatus
    trashed: bool = False
    record: Optional[ArchivedMessageRecord] = None
    attachment_failures: List[AttachmentFailure] = []
    failure: Optional[MessageFailure] = None


class ArchiveResult(BaseModel):
    """Everything an archive run produced, in listing order."""

    label_id: str
    outcomes: List[MessageOutcome] = []

    @computed_field
    @property
    def records(self) -> List[ArchivedMessageRecord]:
        return [
            o.record
            for o in self.outcomes
            if o.status is not MessageStatus.FAILED and o.record is not None
        ]

    @computed_field
    @property
    def failures(self) -> List[MessageFailure]:
        return [o.failure for o in self.outcomes if o.failure is not None]

    @property
    def archived_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status is MessageStatus.ARCHIVED)

    @property
    def partial_count(self) -> int:
        return sum(
            1 for o in self.outcomes if o.status is MessageStatus.ARCHIVED_PARTIAL
        )

    @property
    def failed_count(self) -> int:
        return sum(1 for o in self.outcomes if o.status is MessageStatus.FAILED)
