"""
Configuration loader
Supports loading configuration from TOML and YAML files, with environment variable override support
"""

import os
import re
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import toml
import yaml

logger = logging.getLogger(__name__)

# Overrides the configuration directory (used by tests and portable installs)
HOME_ENV_VAR = "KEEPALIVE_HOME"


def get_config_dir() -> Path:
    """Get the configuration directory

    Strategy:
    1. $KEEPALIVE_HOME if set
    2. Otherwise ~/.config/keepalive (standard user configuration directory)
    """
    override = os.getenv(HOME_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return Path.home() / ".config" / "keepalive"


class ConfigLoader:
    """Configuration loader class"""

    def __init__(self, config_file: Optional[str] = None):
        self.config_file = config_file or self._get_default_config_file()
        self._config: Dict[str, Any] = {}

    def _get_default_config_file(self) -> str:
        """Get default configuration file path

        If the file doesn't exist it is created from the default template during load()
        """
        user_config_file = get_config_dir() / "config.toml"
        logger.info(f"Using user configuration file: {user_config_file}")
        return str(user_config_file)

    @property
    def is_loaded(self) -> bool:
        return bool(self._config)

    def load(self) -> Dict[str, Any]:
        """Load configuration, create default configuration if it doesn't exist"""
        config_path = Path(self.config_file)

        if not config_path.exists():
            logger.info(f"Configuration file doesn't exist: {self.config_file}")
            self._create_default_config(config_path)

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                config_content = f.read()

            config_content = self._replace_env_vars(config_content)
            # Windows: fix paths with backslashes in double quotes before TOML parsing
            if os.name == "nt" and self.config_file.endswith(".toml"):
                config_content = self._sanitize_windows_paths(config_content)

            if self.config_file.endswith(".toml"):
                self._config = toml.loads(config_content)
            else:
                self._config = yaml.safe_load(config_content) or {}

            logger.info(f"✓ Configuration file loaded successfully: {self.config_file}")
            return self._config

        except (yaml.YAMLError, toml.TomlDecodeError) as e:
            logger.error(f"Configuration file parsing error: {e}")
            raise
        except Exception as e:
            logger.error(f"Configuration loading failed: {e}")
            raise

    def _create_default_config(self, config_path: Path) -> None:
        """Create default configuration file"""
        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)

            content = self._get_default_config_content(config_path.parent)
            if not str(config_path).endswith(".toml"):
                content = yaml.safe_dump(toml.loads(content), allow_unicode=True)

            with open(config_path, "w", encoding="utf-8") as f:
                f.write(content)

            logger.info(f"✓ Default configuration file created: {config_path}")

        except Exception as e:
            logger.error(f"Failed to create default configuration file: {e}")
            raise

    def _get_default_config_content(self, config_dir: Path) -> str:
        """Get default configuration content"""
        logs_dir = config_dir / "logs"

        return f"""# Keep-alive service configuration file

[server]
host = "127.0.0.1"
port = 8765
debug = false

[logging]
level = "INFO"
console = true
logs_dir = '{logs_dir}'
max_file_size = "10MB"
backup_count = 5

[scheduler]
# Random delay between two cursor nudges, in milliseconds
min_interval_ms = 30000
max_interval_ms = 90000
move_offset_px = 1

[permission]
poll_interval_ms = 2000

[backend]
# Seconds before a native call or helper process is treated as failed
command_timeout = 5.0

[keepalive]
enabled = false
duration_minutes = 60
last_modified = 0
"""

    def _replace_env_vars(self, content: str) -> str:
        """Replace environment variable placeholders"""

        def replace_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) else ""
            return os.getenv(var_name, default_value)

        # Match ${VAR_NAME} or ${VAR_NAME:default_value} format
        pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"
        return re.sub(pattern, replace_var, content)

    def _sanitize_windows_paths(self, content: str) -> str:
        """Convert TOML double-quoted strings containing backslashes to single-quoted (only called on Windows).

        Example: key = "C:\\Users\\name" -> key = 'C:\\Users\\name'
        """
        pattern = re.compile(
            r"^(\s*[A-Za-z0-9_.-]+\s*=\s*)\"([^\"]*\\\\[^\"]*)\"(\s*)$", re.MULTILINE
        )

        def repl(m):
            prefix, val, suffix = m.group(1), m.group(2), m.group(3)
            return f"{prefix}'{val}'{suffix}"

        return pattern.sub(repl, content)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value, supports dot-separated nested keys"""
        keys = key.split(".")
        value = self._config

        try:
            for k in keys:
                value = value[k]
            return value
        except (KeyError, TypeError):
            return default

    def set(self, key: str, value: Any) -> bool:
        """Set configuration value, supports dot-separated nested keys"""
        self.set_many({key: value})
        return self.save()

    def set_many(self, values: Dict[str, Any]) -> None:
        """Set several dotted keys in memory without saving"""
        for key, value in values.items():
            keys = key.split(".")
            config = self._config

            for k in keys[:-1]:
                if k not in config:
                    config[k] = {}
                config = config[k]

            config[keys[-1]] = value

    def save(self) -> bool:
        """Save configuration to file"""
        try:
            config_path = Path(self.config_file)
            config_path.parent.mkdir(parents=True, exist_ok=True)

            with open(self.config_file, "w", encoding="utf-8") as f:
                if self.config_file.endswith(".toml"):
                    toml.dump(self._config, f)
                else:
                    yaml.safe_dump(self._config, f, allow_unicode=True)

            logger.debug(f"✓ Configuration saved to: {self.config_file}")
            return True

        except Exception as e:
            logger.error(f"Failed to save configuration: {e}")
            return False


def load_config(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Convenience function for loading configuration"""
    loader = get_config(config_file)
    if loader.is_loaded:
        return loader._config
    return loader.load()


# Global configuration instance
_config_instance: Optional[ConfigLoader] = None


def get_config(config_file: Optional[str] = None) -> ConfigLoader:
    """Get global configuration instance"""
    global _config_instance
    if config_file is not None:
        _config_instance = ConfigLoader(config_file)
        _config_instance.load()
    elif _config_instance is None:
        _config_instance = ConfigLoader()
        _config_instance.load()
    return _config_instance


def reset_config() -> None:
    """Drop the global configuration instance (next get_config() reloads)"""
    global _config_instance
    _config_instance = None
