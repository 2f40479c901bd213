"""
Config store
Persists the user-facing keep-alive configuration (AppConfig) in the
[keepalive] table of config.toml
"""

from typing import Any, Dict, Protocol, runtime_checkable

from pydantic import ValidationError

from keepalive_backend.config.loader import ConfigLoader
from keepalive_backend.core.errors import ConfigError
from keepalive_backend.core.logger import get_logger
from keepalive_backend.core.timers import now_ms
from keepalive_backend.models import AppConfig

logger = get_logger(__name__)

SECTION = "keepalive"


@runtime_checkable
class ConfigStoreProtocol(Protocol):
    def get_config(self) -> AppConfig:
        ...

    def set_config(self, partial: Dict[str, Any]) -> AppConfig:
        ...

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: Any) -> None:
        ...


class ConfigStore:
    """Key-value access to AppConfig on top of a ConfigLoader"""

    def __init__(self, config_loader: ConfigLoader, clock=now_ms):
        self.config_loader = config_loader
        self._clock = clock
        if not self.config_loader.is_loaded:
            try:
                self.config_loader.load()
            except Exception as e:
                raise ConfigError(
                    f"Cannot read configuration file {config_loader.config_file}: {e}"
                ) from e

    def get_config(self) -> AppConfig:
        """Get the full configuration, falling back to defaults for missing keys"""
        raw = self.config_loader.get(SECTION, {}) or {}
        known = {k: v for k, v in raw.items() if k in AppConfig.model_fields}
        try:
            return AppConfig(**known)
        except ValidationError as e:
            raise ConfigError(f"Invalid [{SECTION}] configuration: {e}") from e

    def set_config(self, partial: Dict[str, Any]) -> AppConfig:
        """Merge a partial configuration and stamp last_modified"""
        merged = self.get_config().model_dump(by_alias=False)
        for key, value in partial.items():
            field = self._field_name(key)
            if value is not None:
                merged[field] = value
        merged["last_modified"] = self._clock()

        try:
            config = AppConfig(**merged)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration update {partial}: {e}") from e

        self._write(config)
        return config

    def get(self, key: str) -> Any:
        """Get a single configuration field"""
        return getattr(self.get_config(), self._field_name(key))

    def set(self, key: str, value: Any) -> None:
        """Set a single configuration field (also stamps last_modified)"""
        self.set_config({key: value})

    def reset(self) -> AppConfig:
        """Restore default configuration"""
        config = AppConfig(last_modified=self._clock())
        self._write(config)
        return config

    @property
    def path(self) -> str:
        return self.config_loader.config_file

    def _write(self, config: AppConfig) -> None:
        values = {
            f"{SECTION}.{name}": value
            for name, value in config.model_dump(by_alias=False).items()
        }
        self.config_loader.set_many(values)
        if not self.config_loader.save():
            raise ConfigError(f"Failed to save configuration to {self.path}")
        logger.debug(f"Configuration updated: {config.model_dump(by_alias=False)}")

    @staticmethod
    def _field_name(key: str) -> str:
        """Accept both snake_case and camelCase keys"""
        if key in AppConfig.model_fields:
            return key
        for name, field in AppConfig.model_fields.items():
            if field.alias == key:
                return name
        raise ConfigError(f"Unknown configuration key: {key}")
