import asyncio
from typing import Optional

from mail_archiver.config import CFG, Config
from mail_archiver.errors import AuthExpired, FailureKind, MailArchiverError
from mail_archiver.models.archive import (
    ArchiveResult,
    MessageFailure,
    MessageOutcome,
    MessageStatus,
)
from mail_archiver.services.archive import ArchiveWriter
from mail_archiver.services.attachments import resolve_attachments
from mail_archiver.services.gmail import GmailClient
from mail_archiver.services.walker import extract_content, find_attachments
from mail_archiver.utils.logger import logger
from mail_archiver.utils.utils import gather_or_cancel


class ArchivePipeline:
    """
    Archives every message carrying a label, then moves it to the trash.

    Per message: fetch -> decode -> resolve attachments -> write -> trash. The
    trash call only happens once the archive directory has been fully written.
    """

    def __init__(
        self,
        client: GmailClient,
        config: Config = CFG,
        writer: Optional[ArchiveWriter] = None,
    ):
        self.client = client
        self.config = config
        self.writer = writer or ArchiveWriter(
            config.archive_root, collision_policy=config.collision_policy
        )

    async def run(self, label_id: str, max_results: Optional[int] = None) -> ArchiveResult:
        """
        Archives the messages of one label.

        Raises when the messages cannot be listed, the archive root cannot be
        created, or the credentials expire. In the last case messages still in
        flight are cancelled and not trashed. Everything else is reported per
        message in the returned ArchiveResult.
        """
        message_ids = await self.client.list_messages(
            label_ids=[label_id], max_results=max_results or self.config.max_results
        )
        logger.info(f"Found {len(message_ids)} messages with label {label_id} to archive.")

        if not message_ids:
            return ArchiveResult(label_id=label_id)

        await asyncio.to_thread(self.writer.ensure_root)

        semaphore = asyncio.Semaphore(self.config.max_concurrent_messages)

        async def _bounded(message_id: str) -> MessageOutcome:
            async with semaphore:
                return await self.archive_message(message_id)

        # on AuthExpired the remaining messages are cancelled before anything else is trashed
        outcomes = await gather_or_cancel(*(_bounded(m) for m in message_ids))
        result = ArchiveResult(label_id=label_id, outcomes=list(outcomes))

        logger.info(
            f"Archive of label {label_id} finished: {result.archived_count} archived, "
            f"{result.partial_count} with missing attachments, {result.failed_count} failed."
        )
        return result

    async def archive_message(self, message_id: str) -> MessageOutcome:
        """Runs one message through the pipeline, containing every failure except AuthExpired."""
        try:
            message = await self.client.get_message(message_id)

            content = extract_content(message.payload)
            descriptors = find_attachments(message.payload)

            attachments, attachment_failures = await resolve_attachments(
                self.client,
                message_id,
                descriptors,
                max_concurrency=self.config.max_concurrent_attachments,
            )

            record = await self.writer.write_async(
                message, content, attachments, has_attachments=bool(descriptors)
            )
        except AuthExpired:
            raise
        except MailArchiverError as e:
            logger.error(f"Message {message_id} not archived, skipping trash: {e}")
            return self._failed(message_id, e.kind, str(e))
        except Exception as e:
            logger.exception(f"Unexpected error archiving message {message_id}, skipping trash")
            return self._failed(message_id, FailureKind.REMOTE_ERROR, f"Unexpected error: {e!r}")

        try:
            await self.client.trash_message(message_id)
        except AuthExpired:
            raise
        except MailArchiverError as e:
            logger.error(f"Message {message_id} archived but could not be trashed: {e}")
            return MessageOutcome(
                message_id=message_id,
                status=MessageStatus.FAILED,
                record=record,
                attachment_failures=attachment_failures,
                failure=MessageFailure(
                    message_id=message_id, kind=e.kind, reason=f"Trash failed: {e}"
                ),
            )

        if attachment_failures:
            names = ", ".join(f.filename for f in attachment_failures)
            logger.warning(f"Message {message_id} archived without attachments: {names}")
            return MessageOutcome(
                message_id=message_id,
                status=MessageStatus.ARCHIVED_PARTIAL,
                trashed=True,
                record=record,
                attachment_failures=attachment_failures,
                failure=MessageFailure(
                    message_id=message_id,
                    kind=FailureKind.PARTIAL_ATTACHMENT_FAILURE,
                    reason=f"{len(attachment_failures)} attachment(s) could not be resolved: {names}",
                ),
            )

        return MessageOutcome(
            message_id=message_id,
            status=MessageStatus.ARCHIVED,
            trashed=True,
            record=record,
        )

    @staticmethod
    def _failed(message_id: str, kind: FailureKind, reason: str) -> MessageOutcome:
        return MessageOutcome(
            message_id=message_id,
            status=MessageStatus.FAILED,
            failure=MessageFailure(message_id=message_id, kind=kind, reason=reason),
        )
