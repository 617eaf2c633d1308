from typing import Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from jenkins_runner.constants import (
    DEFAULT_BUILD_INFO_ATTEMPTS,
    DEFAULT_CLIENT_TIMEOUT,
    DEFAULT_DOWNLOAD_CHUNK_SIZE,
    DEFAULT_POLL_INTERVAL_SECONDS,
)

LogLevelType = Literal["ERROR", "WARNING", "INFO", "DEBUG", "CRITICAL"]


@runtime_checkable
class JenkinsConnectionInfo(Protocol):
    """
    What the client needs to know about a Jenkins server.

    Host adapters (credential stores, secure resources, plain settings) only
    have to expose these four attributes.
    """

    @property
    def server_url(self) -> str | None: ...

    @property
    def user_name(self) -> str | None: ...

    @property
    def secret(self) -> SecretStr | str | None: ...

    @property
    def csrf_protection_enabled(self) -> bool: ...


def reveal_secret(secret: SecretStr | str | None) -> str:
    if secret is None:
        return ""
    if isinstance(secret, SecretStr):
        return secret.get_secret_value()
    return secret


class ConnectionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    server_url: str | None = None
    user_name: str | None = None
    secret: SecretStr | None = None
    csrf_protection_enabled: bool = False

    @field_validator("server_url")
    @classmethod
    def strip_server_url(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    @property
    def api_url(self) -> str:
        return (self.server_url or "").rstrip("/")

    @classmethod
    def from_connection_info(cls, info: JenkinsConnectionInfo) -> "ConnectionConfig":
        if isinstance(info, ConnectionConfig):
            return info
        secret = info.secret
        return cls(
            server_url=info.server_url,
            user_name=info.user_name,
            secret=SecretStr(reveal_secret(secret)) if secret is not None else None,
            csrf_protection_enabled=info.csrf_protection_enabled,
        )


class JenkinsSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="JENKINS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    server_url: str | None = None
    user_name: str | None = None
    secret: SecretStr | None = None
    csrf_protection_enabled: bool = False

    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, ge=0)
    build_info_attempts: int = Field(default=DEFAULT_BUILD_INFO_ATTEMPTS, ge=0)
    client_timeout: float = DEFAULT_CLIENT_TIMEOUT
    download_chunk_size: int = Field(default=DEFAULT_DOWNLOAD_CHUNK_SIZE, gt=0)
    log_level: LogLevelType = "INFO"

    @property
    def connection(self) -> ConnectionConfig:
        return ConnectionConfig(
            server_url=self.server_url,
            user_name=self.user_name,
            secret=self.secret,
            csrf_protection_enabled=self.csrf_protection_enabled,
        )
