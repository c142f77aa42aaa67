import base64
from typing import Dict, Iterable, List, Optional, Tuple

from mail_archiver.errors import NotFound, TransientRemoteError
from mail_archiver.models.gmail import GmailMessage, Label


# 2024-03-05T10:00:00Z
INTERNAL_DATE = "1709632800000"


def b64(data) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def text_part(text: str, mime_type: str = "text/plain", headers: Optional[List[Dict]] = None) -> Dict:
    return {
        "mimeType": mime_type,
        "filename": "",
        "headers": headers or [],
        "body": {"data": b64(text), "size": len(text)},
    }


def attachment_part(
    filename: str,
    data: Optional[bytes] = None,
    attachment_id: Optional[str] = None,
    mime_type: str = "application/pdf",
) -> Dict:
    body = {"size": len(data or b"")}
    if data is not None:
        body["data"] = b64(data)
    if attachment_id is not None:
        body["attachmentId"] = attachment_id
    return {
        "mimeType": mime_type,
        "filename": filename,
        "headers": [{"name": "Content-Disposition", "value": f'attachment; filename="{filename}"'}],
        "body": body,
    }


def multipart(*parts: Dict, mime_type: str = "multipart/mixed") -> Dict:
    return {"mimeType": mime_type, "filename": "", "body": {"size": 0}, "parts": list(parts)}


def message_dict(
    message_id: str,
    payload: Dict,
    subject: Optional[str] = "Hello",
    sender: Optional[str] = "Alice <alice@example.com>",
    label_ids: Iterable[str] = ("INBOX",),
    internal_date: str = INTERNAL_DATE,
) -> Dict:
    headers = list(payload.get("headers", []))
    if subject is not None:
        headers.append({"name": "Subject", "value": subject})
    if sender is not None:
        headers.append({"name": "From", "value": sender})
    return {
        "id": message_id,
        "threadId": f"t-{message_id}",
        "labelIds": list(label_ids),
        "internalDate": internal_date,
        "payload": {**payload, "headers": headers},
    }


class FakeGmailClient:
    """In-memory stand-in for GmailClient with the same async surface."""

    def __init__(
        self,
        messages: Optional[List[Dict]] = None,
        attachments: Optional[Dict[Tuple[str, str], bytes]] = None,
        labels: Optional[List[Dict]] = None,
    ):
        self.messages = {m["id"]: m for m in messages or []}
        self.attachments = attachments or {}
        self.labels = labels or [{"id": "INBOX", "name": "INBOX", "type": "system"}]
        self.trashed: List[str] = []
        self.modified: List[Tuple[str, List[str]]] = []
        self.fetched_attachments: List[Tuple[str, str]] = []
        self.list_error: Optional[Exception] = None
        self.get_errors: Dict[str, Exception] = {}
        self.attachment_errors: Dict[str, Exception] = {}
        self.trash_errors: Dict[str, Exception] = {}

    async def list_messages(self, label_ids=None, max_results=None, query=None) -> List[str]:
        if self.list_error:
            raise self.list_error
        ids = [
            message_id
            for message_id, message in self.messages.items()
            if not label_ids or set(label_ids) <= set(message.get("labelIds", []))
        ]
        return ids[:max_results] if max_results else ids

    async def get_message(self, message_id: str) -> GmailMessage:
        if message_id in self.get_errors:
            raise self.get_errors[message_id]
        if message_id not in self.messages:
            raise NotFound(f"Message {message_id} not found", 404)
        return GmailMessage.model_validate(self.messages[message_id])

    async def fetch_attachment(self, message_id: str, attachment_id: str) -> bytes:
        self.fetched_attachments.append((message_id, attachment_id))
        if attachment_id in self.attachment_errors:
            raise self.attachment_errors[attachment_id]
        return self.attachments[(message_id, attachment_id)]

    async def trash_message(self, message_id: str) -> None:
        if message_id in self.trash_errors:
            raise self.trash_errors[message_id]
        self.trashed.append(message_id)

    async def list_labels(self) -> List[Label]:
        return [Label.model_validate(label) for label in self.labels]

    async def modify_labels(self, message_id, add_label_ids, remove_label_ids=None) -> None:
        known = {label["id"] for label in self.labels}
        missing = [label_id for label_id in add_label_ids if label_id not in known]
        if missing:
            raise NotFound(f"Labels {missing} not found", 404)
        self.modified.append((message_id, list(add_label_ids)))


def transient(message: str = "boom") -> TransientRemoteError:
    return TransientRemoteError(message, 503)
