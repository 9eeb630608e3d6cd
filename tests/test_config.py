from __future__ import annotations

import pytest

from dropsbot.config import Settings, split_csv


def make(**overrides) -> Settings:
    values = dict(
        discord_token="token",
        database_url="sqlite://",
        webhook_secret="s3cret",
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


class TestNormalizers:
    def test_postgres_scheme_is_rewritten(self):
        s = make(database_url="postgres://u:p@db.example.com/drops")
        assert s.database_url == "postgresql://u:p@db.example.com/drops"

    def test_app_url_trailing_slash(self):
        s = make(app_url=" https://drops.example.com/ ")
        assert s.app_url == "https://drops.example.com"
        assert s.link_settings_url == "https://drops.example.com/settings?discord_link=true"

    def test_no_app_url_no_link(self):
        assert make().link_settings_url is None

    def test_snowflakes(self):
        s = make(discord_guild_id=" 123456789012345678 ", discord_client_id="")
        assert s.discord_guild_id == 123456789012345678
        assert s.discord_client_id is None

    def test_log_level(self):
        assert make(log_level=" debug ").log_level == "DEBUG"
        assert make(log_level="").log_level == "INFO"

    def test_command_lists(self):
        s = make(commands_allow_raw="core, drops,,", commands_deny_raw="")
        assert s.commands_allow == ["core", "drops"]
        assert s.commands_deny is None

    def test_split_csv(self):
        assert split_csv(None) == []
        assert split_csv(" a ,b ") == ["a", "b"]


class TestEnvironment:
    def test_reads_node_bot_names(self, monkeypatch):
        monkeypatch.setenv("DISCORD_BOT_TOKEN", "from-env")
        monkeypatch.setenv("NEXT_PUBLIC_APP_URL", "https://app.example.com/")
        monkeypatch.setenv("BOT_PORT", "4000")
        monkeypatch.setenv("DAILY_BONUS_AMOUNT", "25")
        monkeypatch.delenv("DISCORD_TOKEN", raising=False)
        monkeypatch.delenv("APP_URL", raising=False)

        s = Settings(_env_file=None)

        assert s.discord_token == "from-env"
        assert s.app_url == "https://app.example.com"
        assert s.webhook_port == 4000
        assert s.daily_bonus_amount == 25

    def test_defaults(self, monkeypatch):
        for name in ("BOT_WEBHOOK_ENABLED", "BOT_PORT", "BOT_HOST", "DAILY_BONUS_AMOUNT", "DB_CREATE_TABLES"):
            monkeypatch.delenv(name, raising=False)

        s = Settings(_env_file=None)

        assert s.webhook_enabled is True
        assert s.webhook_port == 3001
        assert s.webhook_host == "0.0.0.0"
        assert s.daily_bonus_amount == 50
        assert s.db_create_tables is False


class TestValidate:
    def test_ok(self):
        make().validate()

    def test_webhook_disabled_needs_no_secret(self):
        make(webhook_enabled=False, webhook_secret="").validate()

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"discord_token": ""}, "DISCORD_TOKEN"),
            ({"database_url": ""}, "DATABASE_URL"),
            ({"log_level": "LOUD"}, "LOG_LEVEL"),
            ({"discord_guild_id": "-5"}, "DISCORD_GUILD_ID"),
            ({"daily_bonus_amount": 0}, "DAILY_BONUS_AMOUNT"),
            ({"webhook_secret": ""}, "BOT_WEBHOOK_SECRET"),
            ({"webhook_port": 70000}, "BOT_PORT"),
        ],
    )
    def test_errors(self, overrides, message):
        with pytest.raises(RuntimeError, match=message):
            make(**overrides).validate()
