"""Configuration management for casb-risk-sync."""

import logging
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from pydantic import AliasChoices, Field, ValidationError, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    SettingsError,
)

from .errors import ConfigError
from .sync.tiers import RiskRange, parse_risk_ranges

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAMES = ["azure_casb.yml", "azure_casb.yaml"]

# Flat upper-case keys used by older azure_casb.yml files -> (section, field)
_LEGACY_KEYS: dict[str, tuple[str, str]] = {
    "CASB_USER_NAME": ("casb", "user_name"),
    "CASB_PASSWORD": ("casb", "password"),
    "RISK_SCORE_URL": ("casb", "risk_score_url"),
    "AZURE_ADMIN_LOGIN_NAME": ("azure", "admin_login_name"),
    "AZURE_ADMIN_LOGIN_PASSWORD": ("azure", "admin_login_password"),
    "AZURE_GROUPS_NAME": ("azure", "groups_name"),
    "RISK_MANAGER_INTERVAL_TIME": ("risk_manager", "interval_time"),
    "TERMINATE_USER_ACTIVE_SESSION": ("risk_manager", "terminate_user_active_session"),
    "MAP_RISK_SCORE": ("risk_manager", "map_risk_score"),
    "MAIL_NICKNAME": ("risk_manager", "mail_nickname"),
    "LOGGER_JSON_FORMAT": ("logger", "json_format"),
}


class _EnvFirstSettings(BaseSettings):
    """Settings section where environment variables win over file values.

    A few fields also accept their older unprefixed environment names
    (``RISK_SCORE_URL``, ``TERMINATE_USER_ACTIVE_SESSION``, ``MAP_RISK_SCORE``).
    """

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return env_settings, init_settings, dotenv_settings, file_secret_settings


class CasbConfig(_EnvFirstSettings):
    """Forcepoint CASB report access."""

    model_config = SettingsConfigDict(env_prefix="CASB_", extra="ignore", populate_by_name=True)

    user_name: str = Field(default="", description="CASB basic-auth user name")
    password: str = Field(default="", description="CASB basic-auth password")
    risk_score_url: str = Field(
        default="",
        validation_alias=AliasChoices("CASB_RISK_SCORE_URL", "risk_score_url"),
        description="URL of the risk score CSV report",
    )


class AzureConfig(_EnvFirstSettings):
    """Azure AD administrator login and risk-level groups."""

    model_config = SettingsConfigDict(env_prefix="AZURE_", extra="ignore")

    admin_login_name: str = Field(default="", description="Administrator login (prompted if empty)")
    admin_login_password: str = Field(default="", description="Administrator password (prompted if empty)")
    groups_name: str = Field(default="", description="Comma-separated risk-level group names")

    @property
    def group_names(self) -> list[str]:
        """Risk-level group names, in configured order."""
        return [g.strip() for g in self.groups_name.split(",") if g.strip()]


class RiskManagerConfig(_EnvFirstSettings):
    """Polling and reconciliation behavior."""

    model_config = SettingsConfigDict(
        env_prefix="RISK_MANAGER_", extra="ignore", populate_by_name=True
    )

    interval_time: int = Field(default=10, ge=1, description="Polling interval in minutes")
    mail_nickname: bool = Field(default=False, description="Match users by mail nickname")
    terminate_user_active_session: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "RISK_MANAGER_TERMINATE_USER_ACTIVE_SESSION", "terminate_user_active_session"
        ),
        description="Revoke sign-in sessions when a user changes risk-level group",
    )
    map_risk_score: list[dict[str, str]] = Field(
        default_factory=list,
        validation_alias=AliasChoices("RISK_MANAGER_MAP_RISK_SCORE", "map_risk_score"),
        description="Ordered risk score range -> group name mappings",
    )

    @field_validator("map_risk_score", mode="before")
    @classmethod
    def _stringify_ranges(cls, value: Any) -> Any:
        # YAML turns keys like ``100`` into ints
        if not isinstance(value, list):
            return value
        return [
            {str(k): str(v) for k, v in entry.items()} if isinstance(entry, dict) else entry
            for entry in value
        ]


class LoggerConfig(_EnvFirstSettings):
    """Log output settings."""

    model_config = SettingsConfigDict(env_prefix="LOGGER_", extra="ignore")

    json_format: bool = Field(default=False, description="Emit JSON lines instead of plain text")


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(extra="ignore")

    casb: CasbConfig = Field(default_factory=CasbConfig)
    azure: AzureConfig = Field(default_factory=AzureConfig)
    risk_manager: RiskManagerConfig = Field(default_factory=RiskManagerConfig)
    logger: LoggerConfig = Field(default_factory=LoggerConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppConfig":
        """Build configuration from parsed YAML, accepting the legacy flat layout."""
        sections: dict[str, dict[str, Any]] = {
            "casb": {},
            "azure": {},
            "risk_manager": {},
            "logger": {},
        }
        for key, value in data.items():
            key_str = str(key)
            if key_str in sections and isinstance(value, dict):
                sections[key_str].update(value)
                continue
            legacy = _LEGACY_KEYS.get(key_str.upper().replace("-", "_"))
            if legacy:
                section, field = legacy
                sections[section][field] = value

        return cls(
            casb=CasbConfig(**sections["casb"]),
            azure=AzureConfig(**sections["azure"]),
            risk_manager=RiskManagerConfig(**sections["risk_manager"]),
            logger=LoggerConfig(**sections["logger"]),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from a YAML file."""
        with open(path) as f:
            data = yaml.safe_load(f) or {}

        if not isinstance(data, dict):
            raise ConfigError(f"Config file must contain a mapping at the top level: {path}")

        return cls.from_dict(data)

    def risk_ranges(self) -> list[RiskRange]:
        """Parse the configured risk score ranges, in configured order."""
        return parse_risk_ranges(self.risk_manager.map_risk_score)

    def validate_for_run(self) -> list[RiskRange]:
        """Check the settings a sync run cannot do without.

        Returns the parsed risk ranges.
        """
        if not self.casb.risk_score_url:
            raise ConfigError("RISK_SCORE_URL parameter is missing in your config file")
        if not self.azure.group_names:
            raise ConfigError("AZURE_GROUPS_NAME parameter is missing in your config file")
        ranges = self.risk_ranges()
        if not ranges:
            raise ConfigError("MAP_RISK_SCORE parameter is missing in your config file")
        return ranges


def find_config_file(home: Path | None = None) -> Path | None:
    """Look for a default config file in the user's home directory."""
    base = home if home is not None else Path.home()
    for name in DEFAULT_CONFIG_NAMES:
        candidate = base / name
        if candidate.is_file():
            return candidate
    return None


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration from a YAML file and the environment."""
    if config_path is None:
        config_path = find_config_file()
        if config_path is None:
            raise ConfigError(
                "No config file given and none of "
                f"{', '.join(DEFAULT_CONFIG_NAMES)} found in {Path.home()}"
            )

    try:
        return AppConfig.from_yaml(config_path)
    except FileNotFoundError:
        raise ConfigError(f"Config file not found: {config_path}") from None
    except OSError as e:
        raise ConfigError(f"Cannot read config file {config_path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e
    except (ValidationError, SettingsError) as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


class ConfigWatcher:
    """Reload the config file when it changes on disk.

    A daemon thread polls the file's modification time. ``current`` always
    holds the last configuration that loaded successfully.
    """

    def __init__(
        self,
        path: Path,
        initial: AppConfig,
        on_change: Callable[[AppConfig], None] | None = None,
        poll_seconds: float = 2.0,
    ):
        self.path = path
        self.on_change = on_change
        self.poll_seconds = poll_seconds
        self._current = initial
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._mtime = self._stat_mtime()

    @property
    def current(self) -> AppConfig:
        with self._lock:
            return self._current

    def _stat_mtime(self) -> float | None:
        try:
            return self.path.stat().st_mtime
        except OSError:
            return None

    def check(self) -> bool:
        """Reload if the file changed since the last check. Returns True on reload."""
        mtime = self._stat_mtime()
        if mtime is None or mtime == self._mtime:
            return False
        self._mtime = mtime

        try:
            config = load_config(self.path)
        except ConfigError as e:
            logger.warning("Ignoring config change, keeping previous settings: %s", e)
            return False

        with self._lock:
            self._current = config
        logger.info("Config file changed: %s", self.path)
        if self.on_change:
            self.on_change(config)
        return True

    def _watch(self) -> None:
        while not self._stop.wait(self.poll_seconds):
            self.check()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._watch, name="config-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=self.poll_seconds + 1)
            self._thread = None
