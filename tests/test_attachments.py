import asyncio

import pytest

from mail_archiver.errors import AuthExpired, FailureKind, NotFound
from mail_archiver.models.gmail import AttachmentDescriptor
from mail_archiver.services.attachments import resolve_attachments
from tests.helpers import FakeGmailClient, b64, transient


def descriptor(name, data=None, ref=None):
    return AttachmentDescriptor(
        filename=name,
        mime_type="application/pdf",
        data=b64(data) if data is not None else None,
        attachment_id=ref,
    )


@pytest.mark.asyncio
async def test_inline_and_referenced_attachments_resolve_in_order():
    client = FakeGmailClient(attachments={("m1", "r1"): b"remote bytes"})
    resolved, failures = await resolve_attachments(
        client, "m1", [descriptor("a.pdf", data=b"inline bytes"), descriptor("b.pdf", ref="r1")]
    )
    assert failures == []
    assert [(a.filename, a.data) for a in resolved] == [
        ("a.pdf", b"inline bytes"),
        ("b.pdf", b"remote bytes"),
    ]
    # inline payloads never hit the API
    assert client.fetched_attachments == [("m1", "r1")]


@pytest.mark.asyncio
async def test_failed_fetch_skips_only_that_attachment():
    client = FakeGmailClient(attachments={("m1", "ok"): b"fine"})
    client.attachment_errors["bad"] = transient("attachment backend down")

    resolved, failures = await resolve_attachments(
        client, "m1", [descriptor("bad.pdf", ref="bad"), descriptor("ok.pdf", ref="ok")]
    )

    assert [a.filename for a in resolved] == ["ok.pdf"]
    assert len(failures) == 1
    assert failures[0].filename == "bad.pdf"
    assert failures[0].kind is FailureKind.TRANSIENT_REMOTE_ERROR


@pytest.mark.asyncio
async def test_malformed_inline_payload_is_a_decode_failure():
    bad = AttachmentDescriptor(filename="broken.bin", data="***")
    resolved, failures = await resolve_attachments(FakeGmailClient(), "m1", [bad])
    assert resolved == []
    assert failures[0].kind is FailureKind.DECODE_ERROR


@pytest.mark.asyncio
async def test_missing_reference_is_reported_as_not_found():
    client = FakeGmailClient()
    client.attachment_errors["gone"] = NotFound("gone", 404)
    _, failures = await resolve_attachments(client, "m1", [descriptor("gone.pdf", ref="gone")])
    assert failures[0].kind is FailureKind.NOT_FOUND


@pytest.mark.asyncio
async def test_auth_expired_is_not_contained():
    client = FakeGmailClient()
    client.attachment_errors["r1"] = AuthExpired("token revoked", 401)
    with pytest.raises(AuthExpired):
        await resolve_attachments(client, "m1", [descriptor("a.pdf", ref="r1")])


@pytest.mark.asyncio
async def test_concurrency_is_bounded_and_order_kept():
    in_flight = 0
    peak = 0

    class SlowClient(FakeGmailClient):
        async def fetch_attachment(self, message_id, attachment_id):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            # later attachments finish first
            await asyncio.sleep(0.01 * (10 - int(attachment_id)))
            in_flight -= 1
            return attachment_id.encode()

    descriptors = [descriptor(f"{i}.pdf", ref=str(i)) for i in range(6)]
    resolved, _ = await resolve_attachments(SlowClient(), "m1", descriptors, max_concurrency=2)

    assert peak <= 2
    assert [a.data for a in resolved] == [str(i).encode() for i in range(6)]


@pytest.mark.asyncio
async def test_auth_expired_cancels_fetches_in_flight():
    finished = []

    class SlowClient(FakeGmailClient):
        async def fetch_attachment(self, message_id, attachment_id):
            if attachment_id == "revoked":
                raise AuthExpired("token revoked", 401)
            await asyncio.sleep(0.05)
            finished.append(attachment_id)
            return b"late"

    descriptors = [descriptor("slow.pdf", ref="slow"), descriptor("a.pdf", ref="revoked")]
    with pytest.raises(AuthExpired):
        await resolve_attachments(SlowClient(), "m1", descriptors)

    await asyncio.sleep(0.1)
    assert finished == []
