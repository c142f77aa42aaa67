import os
from typing import Callable, Optional
from urllib.parse import parse_qs, urlparse

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import InstalledAppFlow
from googleapiclient.discovery import build

from mail_archiver.config import CFG, Config
from mail_archiver.errors import AuthExpired, TransientRemoteError
from mail_archiver.services.gmail import GmailClient
from mail_archiver.utils.logger import logger


# Read, label and trash access
SCOPES = ["https://www.googleapis.com/auth/gmail.modify"]

SUCCESS_MESSAGE = (
    "Authentication successful! You can close this window and return to the console."
)


def extract_auth_code(pasted: str) -> str:
    """Accepts either the full redirected URL or the bare authorization code."""
    pasted = pasted.strip()
    code = parse_qs(urlparse(pasted).query).get("code")
    if code:
        return code[0]
    if not pasted or "://" in pasted:
        raise ValueError("No authorization code found in the pasted value.")
    return pasted


def _load_token(token_path: str) -> Optional[Credentials]:
    if not os.path.exists(token_path):
        logger.info(f"Token not found at {token_path}.")
        return None
    return Credentials.from_authorized_user_file(token_path, SCOPES)


def _store_token(credentials: Credentials, token_path: str) -> None:
    with open(token_path, "w", encoding="utf-8") as token:
        token.write(credentials.to_json())
    logger.info(f"Token stored to {token_path}")


def _run_console_flow(
    flow: InstalledAppFlow, config: Config, input_fn: Callable[[str], str]
) -> Credentials:
    flow.redirect_uri = f"http://localhost:{config.oauth_redirect_port}/oauth2callback"
    auth_url, _ = flow.authorization_url(access_type="offline", prompt="consent")

    print(f"Authorize this app by visiting this url: {auth_url}")
    print("After authorization, you will be redirected to a page that may not load.")
    pasted = input_fn("Paste the entire URL of that page here: ")

    flow.fetch_token(code=extract_auth_code(pasted))
    return flow.credentials


def _run_new_flow(
    config: Config, input_fn: Callable[[str], str]
) -> Credentials:
    try:
        flow = InstalledAppFlow.from_client_secrets_file(
            config.gmail_credentials_path, SCOPES
        )
    except Exception as e:
        logger.error(
            f"Error loading client secrets file {config.gmail_credentials_path}: {e}"
        )
        raise

    if config.oauth_mode == "console":
        return _run_console_flow(flow, config, input_fn)

    return flow.run_local_server(
        host="localhost",
        port=config.oauth_redirect_port,
        access_type="offline",
        prompt="consent",
        success_message=SUCCESS_MESSAGE,
    )


def load_credentials(config: Config = CFG) -> Credentials:
    """
    Loads the stored token, refreshing it when expired, without any user
    interaction. Raises AuthExpired when there is no usable token and
    TransientRemoteError when the refresh cannot reach the token endpoint.
    """
    credentials = _load_token(config.gmail_token_path)
    if credentials is None:
        raise AuthExpired(f"No token at {config.gmail_token_path}, run the authorization first")

    if credentials.valid:
        return credentials

    if credentials.expired and credentials.refresh_token:
        try:
            credentials.refresh(Request())
        except RefreshError as e:
            raise AuthExpired(f"Stored token could not be refreshed: {e}") from e
        except TransportError as e:
            raise TransientRemoteError(f"Token refresh could not reach the server: {e}") from e
        _store_token(credentials, config.gmail_token_path)
        return credentials

    raise AuthExpired(f"Token at {config.gmail_token_path} is not valid")


def authorize(
    config: Config = CFG, input_fn: Callable[[str], str] = input
) -> Credentials:
    """
    Produces authorized user credentials.

    A stored token is reused and refreshed when expired. Without a usable token
    the installed-app consent flow runs, either through the local redirect
    listener or by pasting the redirected URL at the console, and the new token
    is stored for the next run.
    """
    try:
        return load_credentials(config)
    except AuthExpired as e:
        logger.warning(f"{e}. Starting the authorization flow.")

    credentials = _run_new_flow(config, input_fn)
    _store_token(credentials, config.gmail_token_path)
    return credentials


def build_gmail_service(credentials: Credentials):
    """Builds the Gmail API discovery client."""
    try:
        return build("gmail", "v1", credentials=credentials, cache_discovery=False)
    except Exception as e:
        logger.error(f"Error building Gmail service: {e}")
        raise


def get_gmail_client(config: Config = CFG, interactive: bool = True) -> GmailClient:
    """Authorized GmailClient; without interactive the stored token must be usable."""
    credentials = authorize(config) if interactive else load_credentials(config)
    return GmailClient(build_gmail_service(credentials), config, credentials)
