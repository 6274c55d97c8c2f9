from functools import lru_cache
from pathlib import Path
from typing import Annotated, List, Literal

from pydantic import AnyHttpUrl, Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = Field(default="Fairway Chat API", validation_alias="APP_NAME", description="Human readable service name")
    environment: str = Field(default="development", validation_alias="ENVIRONMENT", description="Deployment environment name")
    debug: bool = Field(default=False, validation_alias="DEBUG", description="Enable debug mode")

    cors_origins: Annotated[List[AnyHttpUrl], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost",
            "http://localhost:3000",
            "http://127.0.0.1",
            "http://127.0.0.1:3000",
        ],
        validation_alias="CORS_ORIGINS",
        description="List of allowed CORS origins",
    )

    database_user: str = Field(default="fairway", validation_alias="DB_USER")
    database_password: str = Field(default="fairway", validation_alias="DB_PASSWORD")
    database_host: str = Field(default="db", validation_alias="DB_HOST")
    database_port: int = Field(default=3306, validation_alias="DB_PORT")
    database_name: str = Field(default="fairway", validation_alias="DB_NAME")

    jwt_secret_key: str = Field(default="changeme", validation_alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", validation_alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=60 * 24, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    chat_history_limit: int = Field(
        default=100,
        validation_alias="CHAT_HISTORY_LIMIT",
        description="Number of most recent messages returned when no cursor is given.",
    )
    chat_poll_limit: int = Field(
        default=50,
        validation_alias="CHAT_POLL_LIMIT",
        description="Maximum number of messages returned for a cursor or timestamp poll.",
    )
    chat_message_max_length: int = Field(default=4000, validation_alias="CHAT_MESSAGE_MAX_LENGTH")
    poll_interval_seconds: int = Field(
        default=3,
        validation_alias="POLL_INTERVAL_SECONDS",
        description="Interval clients are told to use when polling for new messages.",
    )
    realtime_strategy: Literal["polling", "push"] = Field(
        default="polling",
        validation_alias="REALTIME_STRATEGY",
        description="How new messages reach clients: client polling or the in-process push feed.",
    )

    typing_visible_seconds: int = Field(
        default=5,
        validation_alias="TYPING_VISIBLE_SECONDS",
        description="Typing indicators younger than this are reported to other members.",
    )
    typing_expiry_seconds: int = Field(
        default=10,
        validation_alias="TYPING_EXPIRY_SECONDS",
        description="Typing indicators older than this are deleted when the channel is read.",
    )
    online_threshold_seconds: int = Field(
        default=60,
        validation_alias="ONLINE_THRESHOLD_SECONDS",
        description="Users seen within this window are reported as online.",
    )
    heartbeat_interval_seconds: int = Field(
        default=30,
        validation_alias="HEARTBEAT_INTERVAL_SECONDS",
        description="Interval clients are told to use for presence heartbeats.",
    )

    max_upload_size: int = Field(
        default=10 * 1024 * 1024, validation_alias="MAX_UPLOAD_SIZE", description="Maximum upload size in bytes"
    )
    general_channel_name: str = Field(
        default="General",
        validation_alias="GENERAL_CHANNEL_NAME",
        description="Channel every new signup joins when it exists.",
    )

    web_push_vapid_public_key: str | None = Field(
        default=None,
        validation_alias="WEB_PUSH_VAPID_PUBLIC_KEY",
        description="VAPID public key for Web Push integrations.",
    )
    web_push_vapid_private_key: str | None = Field(
        default=None,
        validation_alias="WEB_PUSH_VAPID_PRIVATE_KEY",
        description="VAPID private key for Web Push integrations.",
    )
    web_push_contact: str | None = Field(
        default=None,
        validation_alias="WEB_PUSH_CONTACT",
        description="Administrative contact (mailto: or https: URL) sent in VAPID claims.",
    )
    web_push_default_tag: str = Field(default="fairway-chat", validation_alias="WEB_PUSH_DEFAULT_TAG")
    web_push_ttl_seconds: int = Field(default=24 * 60 * 60, validation_alias="WEB_PUSH_TTL_SECONDS")
    web_push_timeout_seconds: int = Field(default=10, validation_alias="WEB_PUSH_TIMEOUT_SECONDS")

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url(self) -> str:
        return (
            f"mysql+pymysql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
            "?charset=utf8mb4"
        )

    @property
    def push_enabled(self) -> bool:
        return bool(
            self.web_push_vapid_public_key
            and self.web_push_vapid_private_key
            and self.web_push_contact
        )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v):  # type: ignore[override]
        if v in (None, "", Ellipsis):
            return v
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        if isinstance(v, (list, tuple, set)):
            return list(v)
        return v

    @field_validator("web_push_contact", mode="before")
    @classmethod
    def normalize_contact(cls, value: str | None) -> str | None:
        if value in (None, "", Ellipsis):
            return None
        value = str(value).strip()
        if value.startswith(("mailto:", "https:")):
            return value
        return f"mailto:{value}"


@lru_cache
def get_settings() -> Settings:
    return Settings()
