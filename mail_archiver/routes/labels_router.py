from typing import List

from fastapi import APIRouter, Depends, HTTPException

from mail_archiver.errors import AuthExpired, MailArchiverError
from mail_archiver.models.gmail import Label
from mail_archiver.models.request import LabelRequest, LabelResponse
from mail_archiver.routes.dependencies import get_client
from mail_archiver.services.gmail import GmailClient
from mail_archiver.services.inbox import get_labels, label_email
from mail_archiver.utils.logger import logger


router = APIRouter()


@router.get("/labels", response_model=List[Label])
async def list_labels(client: GmailClient = Depends(get_client)):
    """
    Lists all labels of the mailbox.
    """
    try:
        return await get_labels(client)
    except AuthExpired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except MailArchiverError as e:
        raise HTTPException(status_code=500, detail=f"Error fetching labels: {e}")


@router.post("/messages/{message_id}/labels", response_model=LabelResponse)
async def apply_label(
    message_id: str, request: LabelRequest, client: GmailClient = Depends(get_client)
):
    """
    Adds a label to a message. A label that no longer exists is skipped.
    """
    try:
        labeled = await label_email(client, message_id, request.label_id)
    except AuthExpired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except MailArchiverError as e:
        msg = f"Error labeling email {message_id}: {e}"
        logger.error(msg)
        raise HTTPException(status_code=500, detail=msg)

    return LabelResponse(
        message_id=message_id,
        label_id=request.label_id,
        status="labeled" if labeled else "skipped",
    )
