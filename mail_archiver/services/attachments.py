import asyncio
from typing import List, Tuple, Union

from mail_archiver.errors import AuthExpired, MailArchiverError
from mail_archiver.models.archive import AttachmentFailure
from mail_archiver.models.gmail import AttachmentDescriptor, ResolvedAttachment
from mail_archiver.services.decoder import decode_bytes
from mail_archiver.services.gmail import GmailClient
from mail_archiver.utils.logger import logger
from mail_archiver.utils.utils import gather_or_cancel


async def resolve_attachment(
    client: GmailClient, message_id: str, descriptor: AttachmentDescriptor
) -> ResolvedAttachment:
    """
    Returns the bytes of one attachment, decoding the inline body or downloading
    it by reference.
    """
    if descriptor.is_inline:
        data = decode_bytes(descriptor.data)
    else:
        logger.info(f"Downloading attachment: {descriptor.filename}...")
        data = await client.fetch_attachment(message_id, descriptor.attachment_id)

    return ResolvedAttachment(
        filename=descriptor.filename, mime_type=descriptor.mime_type, data=data
    )


async def resolve_attachments(
    client: GmailClient,
    message_id: str,
    descriptors: List[AttachmentDescriptor],
    max_concurrency: int = 4,
) -> Tuple[List[ResolvedAttachment], List[AttachmentFailure]]:
    """
    Resolve all attachments of a message, at most max_concurrency at a time.

    Results keep discovery order. An attachment that fails is reported and skipped;
    only an expired authorization aborts the whole message, cancelling the fetches
    still in flight.
    """
    semaphore = asyncio.Semaphore(max_concurrency)

    async def _resolve(
        descriptor: AttachmentDescriptor,
    ) -> Union[ResolvedAttachment, AttachmentFailure]:
        async with semaphore:
            try:
                return await resolve_attachment(client, message_id, descriptor)
            except AuthExpired:
                raise
            except MailArchiverError as e:
                logger.warning(
                    f"Attachment {descriptor.filename} of message {message_id} skipped: {e}"
                )
                return AttachmentFailure(
                    filename=descriptor.filename, kind=e.kind, reason=str(e)
                )

    results = await gather_or_cancel(*(_resolve(d) for d in descriptors))

    resolved = [r for r in results if isinstance(r, ResolvedAttachment)]
    failures = [r for r in results if isinstance(r, AttachmentFailure)]
    return resolved, failures
