"""Tests for RolloutSettings and the settings cache."""

import pytest
from pydantic import ValidationError

from rollout.core.settings import RolloutSettings, get_settings
from rollout.execution.conflict import ConflictRetryPolicy
from rollout.update.models import TimingConfig


class TestDefaults:
    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        settings = RolloutSettings()
        assert settings.pod_update_timeout == 600.0
        assert settings.pod_max_polling_interval == 30.0
        assert settings.conflict_max_attempts == 6
        assert settings.conflict_retry_delay == 0.01
        assert settings.log_level == "INFO"
        assert settings.log_json is None


class TestEnvironment:
    """ROLLOUT_* environment variables override defaults."""

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("ROLLOUT_POD_UPDATE_TIMEOUT", "900")
        monkeypatch.setenv("ROLLOUT_CONFLICT_MAX_ATTEMPTS", "3")
        monkeypatch.setenv("ROLLOUT_LOG_LEVEL", "debug")
        monkeypatch.setenv("ROLLOUT_LOG_JSON", "true")

        settings = RolloutSettings()
        assert settings.pod_update_timeout == 900.0
        assert settings.conflict_max_attempts == 3
        assert settings.log_level == "DEBUG"
        assert settings.log_json is True

    def test_dotenv_file(self, monkeypatch, tmp_path):
        (tmp_path / ".env").write_text("ROLLOUT_POD_MAX_POLLING_INTERVAL=5\n")
        monkeypatch.chdir(tmp_path)
        assert RolloutSettings().pod_max_polling_interval == 5.0

    @pytest.mark.parametrize(
        "var,value",
        [
            ("ROLLOUT_POD_UPDATE_TIMEOUT", "0"),
            ("ROLLOUT_POD_MAX_POLLING_INTERVAL", "-1"),
            ("ROLLOUT_CONFLICT_MAX_ATTEMPTS", "0"),
            ("ROLLOUT_LOG_LEVEL", "LOUD"),
        ],
    )
    def test_invalid_values_rejected(self, monkeypatch, var, value):
        monkeypatch.setenv(var, value)
        with pytest.raises(ValidationError):
            RolloutSettings()


class TestBuilders:
    def test_timing(self):
        settings = RolloutSettings(pod_update_timeout=120, pod_max_polling_interval=5)
        assert settings.timing() == TimingConfig(
            pod_update_timeout=120.0, pod_max_polling_interval=5.0
        )

    def test_conflict_policy(self):
        policy = RolloutSettings(conflict_max_attempts=2, conflict_retry_delay=0).conflict_policy()
        assert isinstance(policy, ConflictRetryPolicy)
        assert policy.max_attempts == 2
        assert policy.delay == 0


class TestGetSettings:
    def test_cached(self):
        assert get_settings() is get_settings()

    def test_cache_clear_rereads_env(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("ROLLOUT_POD_UPDATE_TIMEOUT", "42")
        get_settings.cache_clear()
        second = get_settings()
        assert second is not first
        assert second.pod_update_timeout == 42.0
