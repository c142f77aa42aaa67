from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from mail_archiver.config import CFG
from mail_archiver.errors import AuthExpired, MailArchiverError
from mail_archiver.models.gmail import EmailPreview
from mail_archiver.routes.dependencies import get_client
from mail_archiver.services.gmail import GmailClient
from mail_archiver.services.inbox import preview_messages


router = APIRouter()


@router.get("/messages", response_model=List[EmailPreview])
async def list_message_previews(
    label_id: str = "INBOX",
    limit: int = Query(default=10, ge=1, le=500),
    client: GmailClient = Depends(get_client),
):
    """
    Returns subject and a content preview of the most recent messages of a label.
    """
    try:
        previews = await preview_messages(client, label_id, limit)
    except AuthExpired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except MailArchiverError as e:
        raise HTTPException(status_code=500, detail=f"Error fetching messages: {e}")

    return [
        p.model_copy(update={"content": p.content[: CFG.preview_length]})
        for p in previews
    ]
