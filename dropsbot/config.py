from __future__ import annotations

from typing import Any, List, Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    parts = [p.strip() for p in raw.split(",")]
    return [p for p in parts if p]


class Settings(BaseSettings):
    """
    Bot + webhook settings.

    Notes:
    - Env var names match the ones the Node bot used so existing deployments
      keep working (DISCORD_TOKEN / DISCORD_BOT_TOKEN, NEXT_PUBLIC_APP_URL).
    - Normalizers are permissive; validate() is strict and is called once at startup.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # -------------------------
    # Discord
    # -------------------------
    discord_token: str = Field(
        default="",
        validation_alias=AliasChoices("DISCORD_TOKEN", "DISCORD_BOT_TOKEN"),
    )
    discord_client_id: Optional[int] = Field(default=None, alias="DISCORD_CLIENT_ID")
    discord_guild_id: Optional[int] = Field(default=None, alias="DISCORD_GUILD_ID")
    discord_sync_guild_only: bool = Field(default=True, alias="DISCORD_SYNC_GUILD_ONLY")

    # Comma-separated module names (see dropsbot.discord.commands.MODULES)
    commands_allow_raw: str = Field(default="", alias="DISCORD_COMMANDS_ALLOW")
    commands_deny_raw: str = Field(default="", alias="DISCORD_COMMANDS_DENY")

    # -------------------------
    # Database
    # -------------------------
    database_url: str = Field(default="", alias="DATABASE_URL")
    # The web app owns the schema; only create tables for local dev.
    db_create_tables: bool = Field(default=False, alias="DB_CREATE_TABLES")

    # -------------------------
    # Link webhook
    # -------------------------
    webhook_enabled: bool = Field(default=True, alias="BOT_WEBHOOK_ENABLED")
    webhook_secret: str = Field(default="", alias="BOT_WEBHOOK_SECRET")
    webhook_host: str = Field(default="0.0.0.0", alias="BOT_HOST")
    webhook_port: int = Field(default=3001, alias="BOT_PORT")

    # -------------------------
    # UX
    # -------------------------
    app_url: str = Field(
        default="",
        validation_alias=AliasChoices("APP_URL", "NEXT_PUBLIC_APP_URL"),
    )
    daily_bonus_amount: int = Field(default=50, alias="DAILY_BONUS_AMOUNT")

    # -------------------------
    # Validators / normalizers
    # -------------------------

    @field_validator("log_level", mode="before")
    @classmethod
    def _norm_log_level(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip().upper()
        return s or "INFO"

    @field_validator("discord_token", "webhook_secret", mode="before")
    @classmethod
    def _norm_secret(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip()

    @field_validator("discord_client_id", "discord_guild_id", mode="before")
    @classmethod
    def _norm_snowflake(cls, v: Any) -> Optional[int]:
        s = ("" if v is None else str(v)).strip()
        return int(s) if s else None

    @field_validator("database_url", mode="before")
    @classmethod
    def _norm_database_url(cls, v: Any) -> str:
        s = ("" if v is None else str(v)).strip()
        # Neon/Heroku style URLs; SQLAlchemy only accepts the postgresql scheme.
        if s.startswith("postgres://"):
            s = "postgresql://" + s[len("postgres://"):]
        return s

    @field_validator("app_url", mode="before")
    @classmethod
    def _norm_app_url(cls, v: Any) -> str:
        return ("" if v is None else str(v)).strip().rstrip("/")

    # -------------------------
    # Derived helpers
    # -------------------------

    @property
    def commands_allow(self) -> Optional[List[str]]:
        return split_csv(self.commands_allow_raw) or None

    @property
    def commands_deny(self) -> Optional[List[str]]:
        return split_csv(self.commands_deny_raw) or None

    @property
    def link_settings_url(self) -> Optional[str]:
        if not self.app_url:
            return None
        return f"{self.app_url}/settings?discord_link=true"

    def validate(self) -> None:
        """
        Strict for secrets, lenient for optional toggles.
        """
        if not self.discord_token:
            raise RuntimeError("DISCORD_TOKEN is not set in environment (.env).")

        if not self.database_url:
            raise RuntimeError("DATABASE_URL is not set in environment (.env).")

        if self.log_level not in _LOG_LEVELS:
            raise RuntimeError(f"LOG_LEVEL must be one of: {', '.join(sorted(_LOG_LEVELS))}")

        if self.discord_guild_id is not None and self.discord_guild_id <= 0:
            raise RuntimeError("DISCORD_GUILD_ID must be a positive integer.")

        if self.daily_bonus_amount <= 0:
            raise RuntimeError("DAILY_BONUS_AMOUNT must be > 0.")

        if self.webhook_enabled:
            if not self.webhook_secret:
                raise RuntimeError("BOT_WEBHOOK_SECRET must be set when BOT_WEBHOOK_ENABLED=true.")
            if not (0 < self.webhook_port < 65536):
                raise RuntimeError("BOT_PORT must be between 1 and 65535.")


settings = Settings()
