"""
On-disk archive layout.

    <archive_root>/<subject>_<YYYY-MM-DD>/content.txt
    <archive_root>/<subject>_<YYYY-MM-DD>/metadata.json
    <archive_root>/<subject>_<YYYY-MM-DD>/attachments/<filename>

Directory names are claimed with an atomic mkdir, so two messages resolving to
the same name never share a directory even when archived concurrently.
"""

import asyncio
import itertools
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Literal, Optional

from mail_archiver.errors import ArchiveCollisionError, ArchiveWriteError
from mail_archiver.models.archive import ArchivedMessageRecord
from mail_archiver.models.gmail import GmailMessage, ResolvedAttachment
from mail_archiver.utils.logger import logger
from mail_archiver.utils.utils import (
    sanitize_filename,
    sanitize_path_component,
    short_id_tag,
)


CONTENT_FILE = "content.txt"
METADATA_FILE = "metadata.json"
ATTACHMENTS_DIR = "attachments"

MAX_DIR_NAME = 120


def archive_dir_name(subject: str, received: datetime) -> str:
    """<subject>_<YYYY-MM-DD>, the subject truncated so the date always survives."""
    date = received.date().isoformat()
    subject = sanitize_path_component(
        subject, default="message", max_length=MAX_DIR_NAME - len(date) - 1
    )
    return f"{subject}_{date}"


def render_content(subject: str, sender: str, received: datetime, content: str) -> str:
    return (
        f"Subject: {subject}\n"
        f"From: {sender}\n"
        f"Date: {received.isoformat()}\n"
        f"\n"
        f"{content}\n"
    )


def _unique_name(name: str, taken: set) -> str:
    stem, ext = os.path.splitext(name)
    candidate = name
    i = 2
    while candidate.lower() in taken:
        candidate = f"{stem}__{i}{ext}"
        i += 1
    taken.add(candidate.lower())
    return candidate


class ArchiveWriter:
    """Writes one directory per archived message below the archive root."""

    def __init__(
        self, root: str | Path, collision_policy: Literal["suffix", "fail"] = "suffix"
    ):
        self.root = Path(root)
        self.collision_policy = collision_policy

    def ensure_root(self) -> Path:
        try:
            self.root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ArchiveWriteError(
                f"Cannot create archive root {self.root}: {e}"
            ) from e
        return self.root

    def _candidate_names(self, base_name: str, message_id: str) -> Iterator[str]:
        yield base_name
        tagged = f"{base_name}_{short_id_tag(message_id)}"
        yield tagged
        for i in itertools.count(2):
            yield f"{tagged}_{i}"

    def _claim_directory(self, base_name: str, message_id: str) -> Path:
        for name in self._candidate_names(base_name, message_id):
            path = self.root / name
            try:
                path.mkdir()
                return path
            except FileExistsError:
                if self.collision_policy == "fail":
                    raise ArchiveCollisionError(
                        f"Archive directory {path} already exists (message {message_id})"
                    )
                logger.info(f"Archive directory {path.name} taken, trying next name")
            except OSError as e:
                raise ArchiveWriteError(
                    f"Cannot create archive directory {path}: {e}"
                ) from e

    def write(
        self,
        message: GmailMessage,
        content: str,
        attachments: List[ResolvedAttachment],
        has_attachments: Optional[bool] = None,
    ) -> ArchivedMessageRecord:
        """
        Writes content.txt, the attachments and metadata.json for one message.

        The directory is removed again if any of the writes fails, so a message is
        either fully on disk or not at all.
        """
        subject, sender, received = message.subject, message.sender, message.received
        directory = self._claim_directory(archive_dir_name(subject, received), message.id)

        try:
            (directory / CONTENT_FILE).write_text(
                render_content(subject, sender, received, content), encoding="utf-8"
            )

            written: List[str] = []
            if attachments:
                attachments_dir = directory / ATTACHMENTS_DIR
                attachments_dir.mkdir()
                taken: set = set()
                for attachment in attachments:
                    name = _unique_name(sanitize_filename(attachment.filename), taken)
                    with open(attachments_dir / name, "xb") as f:
                        f.write(attachment.data)
                    written.append(name)

            record = ArchivedMessageRecord(
                message_id=message.id,
                subject=subject,
                sender=sender,
                received=received,
                has_attachments=bool(attachments) if has_attachments is None else has_attachments,
                attachments=written,
                archive_dir=str(directory),
            )
            (directory / METADATA_FILE).write_text(
                record.model_dump_json(indent=2), encoding="utf-8"
            )

        except OSError as e:
            shutil.rmtree(directory, ignore_errors=True)
            raise ArchiveWriteError(
                f"Writing archive for message {message.id} to {directory} failed: {e}"
            ) from e

        logger.info(f"Message {message.id} archived to {directory}")
        return record

    async def write_async(
        self,
        message: GmailMessage,
        content: str,
        attachments: List[ResolvedAttachment],
        has_attachments: Optional[bool] = None,
    ) -> ArchivedMessageRecord:
        return await asyncio.to_thread(
            self.write, message, content, attachments, has_attachments
        )
