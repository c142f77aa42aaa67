from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from mail_archiver.utils.logger import logger, set_log_level


class Config(BaseSettings):
    package_name: str = "mail_archiver"
    log_level: str = "INFO"

    # Gmail / OAuth
    gmail_credentials_path: str = "credentials.json"
    gmail_token_path: str = "token.json"
    gmail_user_id: str = "me"
    oauth_redirect_port: int = 3005
    oauth_mode: Literal["local_server", "console"] = "local_server"

    # Archive layout
    archive_root: str = "archive"
    collision_policy: Literal["suffix", "fail"] = "suffix"

    # Listing / preview
    max_results: int = Field(default=50, ge=1)
    preview_length: int = Field(default=200, ge=0)

    # Concurrency and remote call policy
    max_concurrent_messages: int = Field(default=1, ge=1)
    max_concurrent_attachments: int = Field(default=4, ge=1)
    request_timeout: float = Field(default=30.0, gt=0)
    max_retries: int = Field(default=3, ge=0)
    retry_backoff: float = Field(default=1.0, ge=0)

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper()


CFG = Config()

set_log_level(CFG.log_level)
logger.debug(f"Config: {CFG}")
