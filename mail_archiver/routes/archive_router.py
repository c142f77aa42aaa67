from fastapi import APIRouter, Depends, HTTPException

from mail_archiver.config import CFG
from mail_archiver.errors import AuthExpired, MailArchiverError
from mail_archiver.models.archive import ArchiveResult
from mail_archiver.models.request import ArchiveRequest
from mail_archiver.routes.dependencies import get_client
from mail_archiver.services.gmail import GmailClient
from mail_archiver.services.pipeline import ArchivePipeline
from mail_archiver.utils.logger import logger


router = APIRouter()


@router.post("/archive", response_model=ArchiveResult)
async def archive_label(request: ArchiveRequest, client: GmailClient = Depends(get_client)):
    """
    Archives every message of a label to disk and moves the archived ones to the trash.
    """
    pipeline = ArchivePipeline(client, CFG)

    try:
        return await pipeline.run(request.label_id, max_results=request.max_results)
    except AuthExpired as e:
        raise HTTPException(status_code=401, detail=str(e))
    except MailArchiverError as e:
        msg = f"Archive of label {request.label_id} aborted: {e}"
        logger.error(msg)
        raise HTTPException(status_code=500, detail=msg)
