import pytest

from mail_archiver.config import Config
from mail_archiver.services.archive import ArchiveWriter


@pytest.fixture
def config(tmp_path):
    return Config(
        archive_root=str(tmp_path / "archive"),
        gmail_token_path=str(tmp_path / "token.json"),
        gmail_credentials_path=str(tmp_path / "credentials.json"),
        retry_backoff=0.0,
        max_retries=2,
        request_timeout=5.0,
    )


@pytest.fixture
def writer(config):
    return ArchiveWriter(config.archive_root, collision_policy="suffix")
