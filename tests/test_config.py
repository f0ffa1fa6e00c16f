from pathlib import Path

from faultqueue.config import (
    DEFAULT_APP_PORT,
    DEFAULT_DATABASE_URL,
    DEFAULT_INTERVAL_SECONDS,
    load_config,
    load_runtime_env,
    resolve_app_port,
)


def test_defaults_apply_for_empty_environment() -> None:
    config = load_config({})

    assert config.database.url == DEFAULT_DATABASE_URL
    assert config.reconciler.enabled is True
    assert config.reconciler.interval_s == float(DEFAULT_INTERVAL_SECONDS)
    assert config.reconciler.stale_after_hours == 72
    assert config.external.retry_max == 2
    assert config.sonarr.enabled is False
    assert config.approval.tv_auto_approve_backends == ("sickrage",)
    assert config.tvmaze.base_url == "https://api.tvmaze.com"


def test_backend_enabled_without_url_is_disabled() -> None:
    config = load_config({"SONARR_ENABLED": "true", "COUCHPOTATO_ENABLED": "1"})

    assert config.sonarr.enabled is False
    assert config.couchpotato.enabled is False


def test_backend_sections_are_parsed() -> None:
    config = load_config(
        {
            "SONARR_ENABLED": "yes",
            "SONARR_URL": "http://sonarr:8989",
            "SONARR_API_KEY": "abc",
            "SONARR_QUALITY_PROFILE": "4",
            "SONARR_SEASON_FOLDERS": "false",
            "SICKRAGE_QUALITY_PROFILE": "hd",
            "HEADPHONES_ENABLED": "on",
            "HEADPHONES_URL": "http://headphones:8181",
        }
    )

    assert config.sonarr.enabled is True
    assert config.sonarr.quality_profile == 4
    assert config.sonarr.season_folders is False
    assert config.sickrage.enabled is False
    assert config.sickrage.quality_profile == "hd"
    assert config.headphones.enabled is True


def test_invalid_numbers_fall_back_to_defaults() -> None:
    config = load_config(
        {
            "FAULT_QUEUE_INTERVAL_SEC": "soon",
            "EXTERNAL_RETRY_MAX": "99",
            "EXTERNAL_JITTER_PCT": "-5",
        }
    )

    assert config.reconciler.interval_s == float(DEFAULT_INTERVAL_SECONDS)
    assert config.external.retry_max == 10
    assert config.external.jitter_pct == 0


def test_approval_settings_are_normalised() -> None:
    config = load_config(
        {
            "REQUIRE_MUSIC_APPROVAL": "true",
            "APPROVAL_EXEMPT_USERS": "Ann, bob\ncarl",
            "TV_AUTO_APPROVE_BACKENDS": "Sonarr,SickRage",
        }
    )

    assert config.approval.require_music_approval is True
    assert config.approval.exempt_users == ("ann", "bob", "carl")
    assert config.approval.tv_auto_approve_backends == ("sonarr", "sickrage")


def test_dispatch_settings_snapshot_shares_sections() -> None:
    config = load_config({})
    settings = config.dispatch_settings()

    assert settings.sonarr is config.sonarr
    assert settings.approval is config.approval


def test_env_file_is_overridden_by_process_env(tmp_path: Path) -> None:
    env_file = tmp_path / "app.env"
    env_file.write_text(
        "# comment\nLOG_LEVEL=debug\nSONARR_URL='http://from-file'\nBROKEN\n", encoding="utf-8"
    )

    env = load_runtime_env(env_file=env_file, base_env={"LOG_LEVEL": "warning"})

    assert env["LOG_LEVEL"] == "warning"
    assert env["SONARR_URL"] == "http://from-file"
    assert "BROKEN" not in env
    assert load_config(env).logging.level == "WARNING"


def test_resolve_app_port_validates_range() -> None:
    assert resolve_app_port({}) == DEFAULT_APP_PORT
    assert resolve_app_port({"APP_PORT": " 9000 "}) == 9000
    assert resolve_app_port({"APP_PORT": "http"}) == DEFAULT_APP_PORT
    assert resolve_app_port({"APP_PORT": "70000"}) == DEFAULT_APP_PORT
