import asyncio
from typing import Any, Callable, Dict, List, Optional

import httplib2
from google.auth.exceptions import RefreshError, TransportError
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.errors import HttpError
from pydantic import ValidationError

from mail_archiver.config import CFG, Config
from mail_archiver.errors import (
    AuthExpired,
    DecodeError,
    NotFound,
    RemoteError,
    TransientRemoteError,
)
from mail_archiver.models.gmail import GmailMessage, Label
from mail_archiver.services.decoder import decode_bytes
from mail_archiver.utils.logger import logger


# Gmail caps a single list page at 500 ids
LIST_PAGE_SIZE = 500

TRANSIENT_STATUSES = {408, 429, 500, 502, 503, 504}

# asyncio deadline relative to the httplib2 socket timeout
DEADLINE_FACTOR = 2


def map_http_error(error: HttpError, action: str) -> RemoteError:
    """Translates a googleapiclient HttpError into the matching RemoteError subclass."""
    status = error.resp.status if error.resp is not None else None
    message = f"{action} failed with HTTP {status}: {error}"

    if status == 401:
        return AuthExpired(message, status)
    if status == 404:
        return NotFound(message, status)
    if status in TRANSIENT_STATUSES:
        return TransientRemoteError(message, status)
    # Gmail reports per-user quota exhaustion as 403 rateLimitExceeded
    if status == 403 and "ratelimitexceeded" in str(error).lower().replace(" ", ""):
        return TransientRemoteError(message, status)
    return RemoteError(message, status)


class GmailClient:
    """
    Async facade over the Gmail discovery client.

    Every call runs in a worker thread with a timeout. Transient failures are
    retried with exponential backoff, other failures are raised as RemoteError
    subclasses.
    """

    def __init__(self, service, config: Config = CFG, credentials=None):
        self.service = service
        self.config = config
        self.credentials = credentials
        self.user_id = config.gmail_user_id

    def _run(self, build_request: Callable[[], Any]) -> Dict:
        request = build_request()
        if self.credentials is None:
            return request.execute()

        # httplib2.Http is not thread safe, every call gets its own connection
        http = AuthorizedHttp(
            self.credentials, http=httplib2.Http(timeout=self.config.request_timeout)
        )
        return request.execute(http=http)

    def _call_deadline(self) -> float:
        # A worker thread cannot be interrupted, so with a socket timeout in place the
        # asyncio deadline only backs it up. It stays longer than the socket timeout
        # so a retry does not run next to a request that is still in flight.
        if self.credentials is None:
            return self.config.request_timeout
        return self.config.request_timeout * DEADLINE_FACTOR

    async def _execute(self, build_request: Callable[[], Any], action: str) -> Dict:
        attempt = 0
        while True:
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(self._run, build_request),
                    timeout=self._call_deadline(),
                )
            except asyncio.TimeoutError as e:
                error = TransientRemoteError(
                    f"{action} timed out after {self._call_deadline()}s"
                )
                cause = e
            except HttpError as e:
                error = map_http_error(e, action)
                cause = e
            except RefreshError as e:
                raise AuthExpired(f"{action} failed, credentials expired: {e}") from e
            except (OSError, httplib2.HttpLib2Error, TransportError) as e:
                error = TransientRemoteError(f"{action} failed: {e}")
                cause = e

            if not isinstance(error, TransientRemoteError) or attempt >= self.config.max_retries:
                raise error from cause

            delay = self.config.retry_backoff * (2**attempt)
            attempt += 1
            logger.warning(
                f"{error}; retrying in {delay:.1f}s (attempt {attempt}/{self.config.max_retries})"
            )
            await asyncio.sleep(delay)

    async def list_messages(
        self,
        label_ids: Optional[List[str]] = None,
        max_results: Optional[int] = None,
        query: Optional[str] = None,
    ) -> List[str]:
        """
        Lists message ids carrying all of the given labels, newest first, following
        pagination until max_results ids are collected.
        """
        max_results = max_results or self.config.max_results
        message_ids: List[str] = []
        page_token = None

        while len(message_ids) < max_results:
            page_size = min(LIST_PAGE_SIZE, max_results - len(message_ids))
            kwargs = {"userId": self.user_id, "maxResults": page_size}
            if label_ids:
                kwargs["labelIds"] = label_ids
            if query:
                kwargs["q"] = query
            if page_token:
                kwargs["pageToken"] = page_token

            response = await self._execute(
                lambda: self.service.users().messages().list(**kwargs),
                f"Listing messages for labels {label_ids}",
            )

            message_ids.extend(m["id"] for m in response.get("messages", []))
            page_token = response.get("nextPageToken")
            if not page_token:
                break

        return message_ids[:max_results]

    async def get_message(self, message_id: str) -> GmailMessage:
        response = await self._execute(
            lambda: self.service.users()
            .messages()
            .get(userId=self.user_id, id=message_id, format="full"),
            f"Fetching message {message_id}",
        )
        try:
            return GmailMessage.model_validate(response)
        except ValidationError as e:
            raise DecodeError(f"Message {message_id} has an unexpected shape: {e}") from e

    async def fetch_attachment(self, message_id: str, attachment_id: str) -> bytes:
        """Downloads and decodes an attachment body referenced by its attachment id."""
        response = await self._execute(
            lambda: self.service.users()
            .messages()
            .attachments()
            .get(userId=self.user_id, messageId=message_id, id=attachment_id),
            f"Fetching attachment {attachment_id} of message {message_id}",
        )
        data = response.get("data", "")
        return decode_bytes(data) if data else b""

    async def trash_message(self, message_id: str) -> None:
        await self._execute(
            lambda: self.service.users()
            .messages()
            .trash(userId=self.user_id, id=message_id),
            f"Trashing message {message_id}",
        )
        logger.info(f"Message {message_id} moved to trash")

    async def list_labels(self) -> List[Label]:
        response = await self._execute(
            lambda: self.service.users().labels().list(userId=self.user_id),
            "Listing labels",
        )
        return [Label.model_validate(label) for label in response.get("labels", [])]

    async def modify_labels(
        self,
        message_id: str,
        add_label_ids: List[str],
        remove_label_ids: Optional[List[str]] = None,
    ) -> None:
        body = {"addLabelIds": add_label_ids}
        if remove_label_ids:
            body["removeLabelIds"] = remove_label_ids

        await self._execute(
            lambda: self.service.users()
            .messages()
            .modify(userId=self.user_id, id=message_id, body=body),
            f"Modifying labels of message {message_id}",
        )
