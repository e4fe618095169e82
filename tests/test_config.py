import json
import logging

import pytest
from pydantic import ValidationError

from subathon.core.config import BOT_SCOPES, SubathonSettings, TimerConfig, oauth_url


class TestTimerConfig:
    def test_defaults(self):
        config = TimerConfig()
        assert config.start_seconds == 3600
        assert config.autostart
        assert config.pause_on_zero
        assert config.sub_seconds == 60
        assert config.resub_per_month_seconds == 0
        assert config.gift_sub_seconds == 60
        assert config.bits_per_second == 10
        assert config.tip_per_second == 1
        assert config.add_time_command == "!addtime"
        assert config.sub_time_command == "!subtime"
        assert config.who_can_use == "mods"
        assert config.feedback_format == "{user} {op} {delta} → {remaining}"

    def test_is_frozen(self):
        config = TimerConfig()
        with pytest.raises(ValidationError):
            config.start_seconds = 10

    def test_policy_is_normalized(self):
        assert TimerConfig(who_can_use=" Broadcaster ").who_can_use == "broadcaster"

    def test_negative_start_is_rejected(self):
        with pytest.raises(ValidationError):
            TimerConfig(start_seconds=-1)


class TestFromFieldData:
    def test_camel_case_keys(self):
        config = TimerConfig.from_field_data(
            {"startSeconds": 7200, "whoCanUse": "everyone", "t2Mult": 3, "pauseOnZero": False}
        )
        assert config.start_seconds == 7200
        assert config.who_can_use == "everyone"
        assert config.t2_mult == 3
        assert not config.pause_on_zero

    def test_snake_case_keys(self):
        config = TimerConfig.from_field_data({"gift_sub_seconds": 15, "t3_mult": 10})
        assert config.gift_sub_seconds == 15
        assert config.t3_mult == 10

    def test_null_and_unknown_keys_keep_base(self):
        base = TimerConfig(sub_seconds=90)
        config = TimerConfig.from_field_data({"subSeconds": None, "fontSize": 48}, base=base)
        assert config.sub_seconds == 90

    def test_invalid_values_are_dropped(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = TimerConfig.from_field_data(
                {"startSeconds": "lots", "storageKey": "", "subSeconds": "30"}
            )
        assert config.start_seconds == 3600
        assert config.storage_key == "subathon-timer-v1"
        assert config.sub_seconds == 30
        assert "start_seconds" in caplog.text

    def test_empty_data(self):
        assert TimerConfig.from_field_data(None) == TimerConfig()


class TestSubathonSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = SubathonSettings(_env_file=None)
        assert settings.database_url == ""
        assert settings.render_fps == 10
        assert settings.control_port == 4344
        assert not settings.bot_enabled

    def test_nested_timer_environment(self, monkeypatch):
        monkeypatch.setenv("TIMER__START_SECONDS", "120")
        monkeypatch.setenv("TIMER__WHO_CAN_USE", "everyone")
        settings = SubathonSettings(_env_file=None)
        assert settings.timer.start_seconds == 120
        assert settings.timer.who_can_use == "everyone"

    def test_invalid_database_url(self):
        with pytest.raises(ValidationError):
            SubathonSettings(_env_file=None, database_url="mysql://localhost/db")

    def test_invalid_log_level_defaults_to_info(self):
        assert SubathonSettings(_env_file=None, log_level="chatty").log_level == "INFO"
        assert SubathonSettings(_env_file=None, log_level="debug").log_level == "DEBUG"

    def test_empty_paths_disable_outputs(self):
        settings = SubathonSettings(_env_file=None, timer_file="", feedback_file=" ")
        assert settings.timer_file is None
        assert settings.feedback_file is None

    def test_bot_enabled(self):
        settings = SubathonSettings(
            _env_file=None, client_id="id", client_secret="secret", bot_id="1"
        )
        assert settings.bot_enabled

    def test_load_timer_config_overlays_file(self, tmp_path):
        path = tmp_path / "fields.json"
        path.write_text(json.dumps({"subSeconds": 300, "autostart": False}), encoding="utf-8")
        settings = SubathonSettings(
            _env_file=None, timer=TimerConfig(start_seconds=60), timer_config_file=path
        )
        config = settings.load_timer_config()
        assert config.sub_seconds == 300
        assert not config.autostart
        assert config.start_seconds == 60

    def test_load_timer_config_without_file(self, tmp_path):
        settings = SubathonSettings(_env_file=None, timer_config_file=tmp_path / "missing.json")
        assert settings.load_timer_config() == settings.timer

    @pytest.mark.parametrize("content", ["{broken", "[1, 2]"])
    def test_load_timer_config_bad_file(self, tmp_path, content):
        path = tmp_path / "fields.json"
        path.write_text(content, encoding="utf-8")
        settings = SubathonSettings(_env_file=None, timer_config_file=path)
        assert settings.load_timer_config() == settings.timer


class TestOAuthUrls:
    def test_oauth_url(self):
        url = oauth_url("abc", "http://localhost:4343/oauth/callback", ["user:bot", "bits:read"])
        assert url == (
            "https://id.twitch.tv/oauth2/authorize?client_id=abc"
            "&redirect_uri=http%3A%2F%2Flocalhost%3A4343%2Foauth%2Fcallback"
            "&response_type=code&scope=user%3Abot+bits%3Aread"
        )

    def test_authorization_urls(self):
        settings = SubathonSettings(
            _env_file=None, client_id="abc", oauth_redirect_uri="https://example.com/cb"
        )
        urls = settings.authorization_urls()
        assert urls["bot"] == oauth_url("abc", "https://example.com/cb", BOT_SCOPES)
        assert "channel%3Aread%3Asubscriptions" in urls["broadcaster"]
        assert "redirect_uri=https%3A%2F%2Fexample.com%2Fcb" in urls["broadcaster"]
