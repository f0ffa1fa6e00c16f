"""Application configuration for the fault queue reconciler.

Values resolve with the precedence process environment > env file > defaults.
The env file is ``.env`` in the working directory unless
``FAULTQUEUE_ENV_FILE`` points elsewhere.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any

from faultqueue.logging import get_logger

logger = get_logger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./faultqueue.db"
DEFAULT_INTERVAL_SECONDS = 6 * 60 * 60
DEFAULT_STALE_AFTER_HOURS = 72
DEFAULT_TVMAZE_URL = "https://api.tvmaze.com"
FAULT_QUEUE_JOB_NAME = "fault_queue_handler"
DEFAULT_TV_AUTO_APPROVE_BACKENDS = ("sickrage",)

_RUNTIME_ENV_CACHE: dict[str, str] | None = None


def _load_env_file(path: Path) -> dict[str, str]:
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    env_values: dict[str, str] = {}
    for line in contents.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        key, sep, value = stripped.partition("=")
        if not sep:
            continue
        env_values[key.strip()] = value.strip().strip('"').strip("'")
    return env_values


def load_runtime_env(
    *,
    env_file: str | os.PathLike[str] | None = None,
    base_env: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Load runtime environment values applying the env file before the process env."""

    source = dict(base_env or os.environ)
    env: dict[str, str] = {}

    if env_file is None:
        env_file = source.get("FAULTQUEUE_ENV_FILE") or ".env"
    path = Path(env_file)
    if path.exists() and path.is_file():
        env.update(_load_env_file(path))

    env.update({key: str(value) for key, value in source.items() if value is not None})
    return env


def get_runtime_env() -> Mapping[str, str]:
    """Return the cached runtime environment mapping."""

    global _RUNTIME_ENV_CACHE
    if _RUNTIME_ENV_CACHE is None:
        _RUNTIME_ENV_CACHE = load_runtime_env()
    return _RUNTIME_ENV_CACHE


def override_runtime_env(runtime_env: Mapping[str, str] | None) -> None:
    """Override the cached runtime environment (primarily for testing)."""

    global _RUNTIME_ENV_CACHE
    if runtime_env is None:
        _RUNTIME_ENV_CACHE = None
    else:
        _RUNTIME_ENV_CACHE = dict(runtime_env)


def get_env(name: str, default: str | None = None) -> str | None:
    """Return an environment variable honoring ENV > env file > defaults."""

    return get_runtime_env().get(name, default)


def _env_value(env: Mapping[str, Any], key: str) -> str | None:
    value = env.get(key)
    if value is None:
        return None
    return str(value)


def _as_bool(value: str | None, *, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _bounded_int(
    value: Any,
    *,
    default: int,
    minimum: int | None = None,
    maximum: int | None = None,
) -> int:
    try:
        resolved = int(value)
    except (TypeError, ValueError):
        resolved = default
    if minimum is not None:
        resolved = max(minimum, resolved)
    if maximum is not None:
        resolved = min(maximum, resolved)
    return resolved


def _parse_list(value: str | None) -> tuple[str, ...]:
    if value is None:
        return ()
    candidates = value.replace("\n", ",").split(",")
    return tuple(item.strip() for item in candidates if item.strip())


def _optional_str(value: str | None) -> str | None:
    if value is None:
        return None
    text = value.strip()
    return text or None


@dataclass(slots=True, frozen=True)
class DatabaseConfig:
    url: str


@dataclass(slots=True, frozen=True)
class LoggingConfig:
    level: str
    file: str | None = None


@dataclass(slots=True, frozen=True)
class ReconcilerConfig:
    """Cadence of the scheduled reconciliation pass."""

    enabled: bool
    interval_s: float
    run_on_start: bool
    stale_after_hours: int


@dataclass(slots=True, frozen=True)
class ExternalCallConfig:
    """Timeout and retry budget shared by all outbound HTTP clients."""

    timeout_ms: int
    retry_max: int
    backoff_base_ms: int
    jitter_pct: int


@dataclass(slots=True, frozen=True)
class SonarrConfig:
    enabled: bool
    base_url: str | None
    api_key: str | None
    quality_profile: int | None
    root_path: str | None
    season_folders: bool


@dataclass(slots=True, frozen=True)
class SickRageConfig:
    enabled: bool
    base_url: str | None
    api_key: str | None
    quality_profile: str | None


@dataclass(slots=True, frozen=True)
class CouchPotatoConfig:
    enabled: bool
    base_url: str | None
    api_key: str | None
    profile_id: str | None


@dataclass(slots=True, frozen=True)
class HeadphonesConfig:
    enabled: bool
    base_url: str | None
    api_key: str | None


@dataclass(slots=True, frozen=True)
class TvMazeConfig:
    base_url: str


@dataclass(slots=True, frozen=True)
class ApprovalConfig:
    """Auto-approval rules applied after a successful dispatch.

    ``tv_auto_approve_backends`` names the TV backends whose success marks a
    show approved. Sonarr is deliberately absent from the default.
    """

    require_movie_approval: bool = False
    require_tv_approval: bool = False
    require_music_approval: bool = False
    exempt_users: tuple[str, ...] = ()
    tv_auto_approve_backends: tuple[str, ...] = DEFAULT_TV_AUTO_APPROVE_BACKENDS


@dataclass(slots=True, frozen=True)
class DispatchSettings:
    """Per-pass snapshot of everything the dispatchers read.

    Built once at the start of a pass and never mutated while it runs.
    """

    sonarr: SonarrConfig
    sickrage: SickRageConfig
    couchpotato: CouchPotatoConfig
    headphones: HeadphonesConfig
    approval: ApprovalConfig = field(default_factory=ApprovalConfig)


@dataclass(slots=True, frozen=True)
class AppConfig:
    database: DatabaseConfig
    logging: LoggingConfig
    reconciler: ReconcilerConfig
    external: ExternalCallConfig
    sonarr: SonarrConfig
    sickrage: SickRageConfig
    couchpotato: CouchPotatoConfig
    headphones: HeadphonesConfig
    tvmaze: TvMazeConfig
    approval: ApprovalConfig

    def dispatch_settings(self) -> DispatchSettings:
        return DispatchSettings(
            sonarr=self.sonarr,
            sickrage=self.sickrage,
            couchpotato=self.couchpotato,
            headphones=self.headphones,
            approval=self.approval,
        )


def _backend_enabled(env: Mapping[str, Any], prefix: str, base_url: str | None) -> bool:
    enabled = _as_bool(_env_value(env, f"{prefix}_ENABLED"), default=False)
    if enabled and base_url is None:
        logger.warning(
            "%s is enabled but %s_URL is not set; treating it as disabled",
            prefix.lower(),
            prefix,
        )
        return False
    return enabled


def _load_sonarr(env: Mapping[str, Any]) -> SonarrConfig:
    base_url = _optional_str(_env_value(env, "SONARR_URL"))
    profile_raw = _optional_str(_env_value(env, "SONARR_QUALITY_PROFILE"))
    quality_profile = _bounded_int(profile_raw, default=0, minimum=0) if profile_raw else None
    return SonarrConfig(
        enabled=_backend_enabled(env, "SONARR", base_url),
        base_url=base_url,
        api_key=_optional_str(_env_value(env, "SONARR_API_KEY")),
        quality_profile=quality_profile or None,
        root_path=_optional_str(_env_value(env, "SONARR_ROOT_PATH")),
        season_folders=_as_bool(_env_value(env, "SONARR_SEASON_FOLDERS"), default=True),
    )


def _load_sickrage(env: Mapping[str, Any]) -> SickRageConfig:
    base_url = _optional_str(_env_value(env, "SICKRAGE_URL"))
    return SickRageConfig(
        enabled=_backend_enabled(env, "SICKRAGE", base_url),
        base_url=base_url,
        api_key=_optional_str(_env_value(env, "SICKRAGE_API_KEY")),
        quality_profile=_optional_str(_env_value(env, "SICKRAGE_QUALITY_PROFILE")),
    )


def _load_couchpotato(env: Mapping[str, Any]) -> CouchPotatoConfig:
    base_url = _optional_str(_env_value(env, "COUCHPOTATO_URL"))
    return CouchPotatoConfig(
        enabled=_backend_enabled(env, "COUCHPOTATO", base_url),
        base_url=base_url,
        api_key=_optional_str(_env_value(env, "COUCHPOTATO_API_KEY")),
        profile_id=_optional_str(_env_value(env, "COUCHPOTATO_PROFILE_ID")),
    )


def _load_headphones(env: Mapping[str, Any]) -> HeadphonesConfig:
    base_url = _optional_str(_env_value(env, "HEADPHONES_URL"))
    return HeadphonesConfig(
        enabled=_backend_enabled(env, "HEADPHONES", base_url),
        base_url=base_url,
        api_key=_optional_str(_env_value(env, "HEADPHONES_API_KEY")),
    )


def _load_approval(env: Mapping[str, Any]) -> ApprovalConfig:
    backends_raw = _env_value(env, "TV_AUTO_APPROVE_BACKENDS")
    backends = (
        tuple(name.lower() for name in _parse_list(backends_raw))
        if backends_raw is not None
        else DEFAULT_TV_AUTO_APPROVE_BACKENDS
    )
    return ApprovalConfig(
        require_movie_approval=_as_bool(_env_value(env, "REQUIRE_MOVIE_APPROVAL")),
        require_tv_approval=_as_bool(_env_value(env, "REQUIRE_TV_APPROVAL")),
        require_music_approval=_as_bool(_env_value(env, "REQUIRE_MUSIC_APPROVAL")),
        exempt_users=tuple(
            user.lower() for user in _parse_list(_env_value(env, "APPROVAL_EXEMPT_USERS"))
        ),
        tv_auto_approve_backends=backends,
    )


DEFAULT_APP_PORT = 8080
APP_HOST = "0.0.0.0"


def resolve_app_port(env: Mapping[str, Any] | None = None) -> int:
    """Return the configured application port constrained to valid TCP ranges."""

    runtime_env: Mapping[str, Any] = env if env is not None else get_runtime_env()
    raw_value = _optional_str(_env_value(runtime_env, "APP_PORT"))
    if raw_value is None:
        return DEFAULT_APP_PORT
    try:
        port = int(raw_value)
    except ValueError:
        logger.warning("APP_PORT=%r is not a number; using %d", raw_value, DEFAULT_APP_PORT)
        return DEFAULT_APP_PORT
    if not 1 <= port <= 65535:
        logger.warning("APP_PORT=%d is out of range; using %d", port, DEFAULT_APP_PORT)
        return DEFAULT_APP_PORT
    return port


def load_config(runtime_env: Mapping[str, Any] | None = None) -> AppConfig:
    """Build the application configuration from the runtime environment."""

    env = runtime_env if runtime_env is not None else get_runtime_env()

    database = DatabaseConfig(
        url=_optional_str(_env_value(env, "DATABASE_URL")) or DEFAULT_DATABASE_URL
    )
    logging_config = LoggingConfig(
        level=(_optional_str(_env_value(env, "LOG_LEVEL")) or "INFO").upper(),
        file=_optional_str(_env_value(env, "LOG_FILE")),
    )
    reconciler = ReconcilerConfig(
        enabled=_as_bool(_env_value(env, "FAULT_QUEUE_ENABLED"), default=True),
        interval_s=float(
            _bounded_int(
                _env_value(env, "FAULT_QUEUE_INTERVAL_SEC"),
                default=DEFAULT_INTERVAL_SECONDS,
                minimum=1,
            )
        ),
        run_on_start=_as_bool(_env_value(env, "FAULT_QUEUE_RUN_ON_START"), default=False),
        stale_after_hours=_bounded_int(
            _env_value(env, "FAULT_QUEUE_STALE_AFTER_HOURS"),
            default=DEFAULT_STALE_AFTER_HOURS,
            minimum=1,
        ),
    )
    external = ExternalCallConfig(
        timeout_ms=_bounded_int(
            _env_value(env, "EXTERNAL_TIMEOUT_MS"), default=10_000, minimum=100
        ),
        retry_max=_bounded_int(
            _env_value(env, "EXTERNAL_RETRY_MAX"), default=2, minimum=0, maximum=10
        ),
        backoff_base_ms=_bounded_int(
            _env_value(env, "EXTERNAL_BACKOFF_BASE_MS"), default=250, minimum=1
        ),
        jitter_pct=_bounded_int(
            _env_value(env, "EXTERNAL_JITTER_PCT"), default=20, minimum=0, maximum=100
        ),
    )
    tvmaze = TvMazeConfig(
        base_url=_optional_str(_env_value(env, "TVMAZE_URL")) or DEFAULT_TVMAZE_URL
    )

    return AppConfig(
        database=database,
        logging=logging_config,
        reconciler=reconciler,
        external=external,
        sonarr=_load_sonarr(env),
        sickrage=_load_sickrage(env),
        couchpotato=_load_couchpotato(env),
        headphones=_load_headphones(env),
        tvmaze=tvmaze,
        approval=_load_approval(env),
    )


__all__ = [
    "AppConfig",
    "APP_HOST",
    "DEFAULT_APP_PORT",
    "ApprovalConfig",
    "CouchPotatoConfig",
    "DatabaseConfig",
    "DispatchSettings",
    "ExternalCallConfig",
    "FAULT_QUEUE_JOB_NAME",
    "HeadphonesConfig",
    "LoggingConfig",
    "ReconcilerConfig",
    "SickRageConfig",
    "SonarrConfig",
    "TvMazeConfig",
    "get_env",
    "get_runtime_env",
    "load_config",
    "load_runtime_env",
    "override_runtime_env",
    "resolve_app_port",
]
