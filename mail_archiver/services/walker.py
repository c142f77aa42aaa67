"""
Traversal of the Gmail message part tree.

All functions walk the tree depth-first in pre-order with an explicit stack, so
deeply nested multiparts do not hit the interpreter recursion limit. A node's own
body is always considered, whether or not it also has children.
"""

from typing import Iterator, List

from mail_archiver.models.gmail import AttachmentDescriptor, MessagePart
from mail_archiver.services.decoder import decode_body


NO_CONTENT = "No content"

HTML_BEGIN = "[HTML Content]"
HTML_END = "[End HTML Content]"


def iter_parts(root: MessagePart) -> Iterator[MessagePart]:
    """Yields every part of the tree, root first, children in declared order."""
    stack = [root]
    while stack:
        part = stack.pop()
        yield part
        if not part.is_leaf:
            stack.extend(reversed(part.parts))


def _is_text_part(part: MessagePart, mime_type: str) -> bool:
    return (
        part.mime_type.lower() == mime_type
        and part.body is not None
        and not part.is_attachment_disposition
    )


def first_plain_text(root: MessagePart) -> str:
    """Preview mode: the first non-empty text/plain body wins."""
    for part in iter_parts(root):
        if _is_text_part(part, "text/plain"):
            text = decode_body(part.body, part.charset)
            if text:
                return text
    return NO_CONTENT


def extract_content(root: MessagePart) -> str:
    """
    Archive mode: every text/plain body verbatim and every text/html body wrapped
    in HTML markers, joined by a blank line in traversal order.
    """
    chunks: List[str] = []

    for part in iter_parts(root):
        if _is_text_part(part, "text/plain"):
            text = decode_body(part.body, part.charset)
            if text:
                chunks.append(text)
        elif _is_text_part(part, "text/html"):
            html = decode_body(part.body, part.charset)
            if html:
                chunks.append(f"{HTML_BEGIN}\n{html}\n{HTML_END}")

    return "\n\n".join(chunks) if chunks else NO_CONTENT


def find_attachments(root: MessagePart) -> List[AttachmentDescriptor]:
    """Every part with a filename and a body, at any depth, regardless of MIME type."""
    attachments = []

    for part in iter_parts(root):
        if not part.filename or not part.has_payload:
            continue

        attachments.append(
            AttachmentDescriptor(
                filename=part.filename,
                mime_type=part.mime_type or "application/octet-stream",
                size=part.body.size,
                data=part.body.data,
                attachment_id=part.body.attachment_id,
            )
        )

    return attachments
