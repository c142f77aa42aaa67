import re
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


_CHARSET_RE = re.compile(r"charset\s*=\s*\"?([^\";\s]+)\"?", re.IGNORECASE)


class PartHeader(BaseModel):
    """A single RFC 822 header as returned by the Gmail API."""

    name: str
    value: str = ""


def find_header(headers: List[PartHeader], name: str, default: str = "") -> str:
    """Case-insensitive header lookup, first match wins."""
    wanted = name.lower()
    return next((h.value for h in headers if h.name.lower() == wanted), default)


class PartBody(BaseModel):
    """Body of a message part: inline base64 data, an attachment reference, or neither."""

    model_config = ConfigDict(populate_by_name=True)

    data: Optional[str] = None
    attachment_id: Optional[str] = Field(default=None, alias="attachmentId")
    size: int = 0

    @property
    def has_payload(self) -> bool:
        return bool(self.data or self.attachment_id)


class MessagePart(BaseModel):
    """
    A node of the message part tree.

    Leaves carry a body (inline or referenced); multipart containers carry child
    parts. Both can be present on the same node.
    """

    model_config = ConfigDict(populate_by_name=True)

    part_id: str = Field(default="", alias="partId")
    mime_type: str = Field(default="", alias="mimeType")
    filename: str = ""
    headers: List[PartHeader] = []
    body: Optional[PartBody] = None
    parts: List["MessagePart"] = []

    @property
    def is_leaf(self) -> bool:
        return not self.parts

    @property
    def has_payload(self) -> bool:
        return self.body is not None and self.body.has_payload

    @property
    def charset(self) -> str:
        match = _CHARSET_RE.search(self.header("Content-Type"))
        return match.group(1) if match else "utf-8"

    @property
    def is_attachment_disposition(self) -> bool:
        return "attachment" in self.header("Content-Disposition").lower()

    def header(self, name: str, default: str = "") -> str:
        return find_header(self.headers, name, default)


class GmailMessage(BaseModel):
    """A message fetched with format=full."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    thread_id: str = Field(default="", alias="threadId")
    label_ids: List[str] = Field(default=[], alias="labelIds")
    snippet: str = ""
    internal_date: int = Field(default=0, alias="internalDate")
    payload: MessagePart = Field(default_factory=MessagePart)

    @property
    def subject(self) -> str:
        return self.payload.header("subject") or "No Subject"

    @property
    def sender(self) -> str:
        return self.payload.header("from") or "Unknown Sender"

    @property
    def received(self) -> datetime:
        return datetime.fromtimestamp(self.internal_date / 1000, tz=timezone.utc)


class Label(BaseModel):
    """A Gmail label (system or user defined)."""

    id: str
    name: str
    type: Optional[str] = None


class AttachmentDescriptor(BaseModel):
    """An attachment discovered in the part tree, payload not yet resolved."""

    filename: str
    mime_type: str = "application/octet-stream"
    size: int = 0
    data: Optional[str] = None
    attachment_id: Optional[str] = None

    @property
    def is_inline(self) -> bool:
        return bool(self.data)


class ResolvedAttachment(BaseModel):
    """An attachment with its decoded bytes."""

    filename: str
    mime_type: str
    data: bytes


class EmailPreview(BaseModel):
    """Subject and a short content excerpt of a message."""

    id: str
    subject: str
    content: str
