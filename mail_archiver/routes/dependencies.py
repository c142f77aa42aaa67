from fastapi import HTTPException

from mail_archiver.config import CFG
from mail_archiver.errors import AuthExpired, MailArchiverError
from mail_archiver.services.auth import get_gmail_client
from mail_archiver.services.gmail import GmailClient
from mail_archiver.utils.logger import logger


def get_client() -> GmailClient:
    """
    Builds the Gmail client from the stored token. The server never starts an
    interactive consent flow; run scripts/oauth_token.py first.
    """
    try:
        return get_gmail_client(CFG, interactive=False)
    except AuthExpired as e:
        logger.error(f"Gmail authorization unavailable: {e}")
        raise HTTPException(status_code=401, detail=str(e))
    except MailArchiverError as e:
        logger.error(f"Gmail client could not be built: {e}")
        raise HTTPException(status_code=503, detail=str(e))
