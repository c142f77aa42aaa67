from typing import List

from mail_archiver.errors import AuthExpired, MailArchiverError, NotFound
from mail_archiver.models.gmail import EmailPreview, Label
from mail_archiver.services.gmail import GmailClient
from mail_archiver.services.walker import first_plain_text
from mail_archiver.utils.logger import logger


async def get_labels(client: GmailClient) -> List[Label]:
    try:
        return await client.list_labels()
    except MailArchiverError as e:
        logger.error(f"Error fetching labels: {e}")
        raise


async def get_inbox(client: GmailClient, label_id: str = "INBOX", limit: int = 50) -> List[str]:
    """Ids of the most recent messages carrying label_id."""
    try:
        return await client.list_messages(label_ids=[label_id], max_results=limit)
    except MailArchiverError as e:
        logger.error(f"Error fetching messages for label {label_id}: {e}")
        raise


async def get_email_details(client: GmailClient, message_id: str) -> EmailPreview:
    """
    Subject and first plain-text body of a message. A message that cannot be
    fetched yields an error placeholder instead of failing the listing.
    """
    try:
        message = await client.get_message(message_id)
    except AuthExpired:
        raise
    except MailArchiverError as e:
        logger.error(f"Error fetching details for email {message_id}: {e}")
        return EmailPreview(
            id=message_id, subject="Error", content="Could not fetch email content"
        )

    return EmailPreview(
        id=message_id,
        subject=message.subject,
        content=first_plain_text(message.payload),
    )


async def preview_messages(
    client: GmailClient, label_id: str = "INBOX", limit: int = 10
) -> List[EmailPreview]:
    message_ids = await get_inbox(client, label_id, limit)
    return [await get_email_details(client, message_id) for message_id in message_ids]


async def label_email(client: GmailClient, message_id: str, label_id: str) -> bool:
    """
    Adds a label to a message. Returns False when the label (or message) no
    longer exists; any other failure propagates.
    """
    try:
        await client.modify_labels(message_id, add_label_ids=[label_id])
    except NotFound:
        logger.warning(
            f"Label with ID {label_id} not found. Skipping label assignment for email {message_id}"
        )
        return False

    logger.info(f"Successfully labeled email {message_id} with label ID {label_id}")
    return True
