"""
INI-backed settings for the CLI: login cookie, timeouts and pool sizes.
"""

import configparser
import logging
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from bili_cli.exceptions import ConfigurationError
from bili_cli.models.config import ClientConfig
from bili_cli.storage.credentials import parse_cookie_string

log = logging.getLogger(__name__)

SECTION = "DEFAULT"


class ConfigManager:
    """Reads, migrates and writes the `[DEFAULT]` section of config.ini."""

    def __init__(self, config_file_path: Path):
        self.config_file_path = config_file_path
        self._parser = configparser.ConfigParser(interpolation=None)

    def load_config(self, cli_options: dict[str, Any] | None = None) -> ClientConfig:
        """
        Builds a validated ClientConfig from the file plus command-line overrides.

        A missing file is not an error: the client then runs anonymously with
        default settings. Overrides whose value is None are ignored.

        Raises:
            ConfigurationError: If the file cannot be parsed or a value is invalid.
        """
        settings: dict[str, Any] = {}
        if self.config_file_path.is_file():
            try:
                self._parser.read(self.config_file_path, encoding="utf-8")
            except configparser.Error as e:
                raise ConfigurationError(f"Cannot parse {self.config_file_path}: {e}") from e

            if self._migrate_if_needed():
                log.info("[yellow]Added missing settings to the configuration file.[/yellow]")
            settings = self._get_config_as_dict()
        else:
            log.debug(f"No config file at '{self.config_file_path}', using defaults.")

        for key, value in (cli_options or {}).items():
            if value is not None:
                settings[key] = value

        try:
            return ClientConfig(**settings, config_path=str(self.config_file_path.parent))
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration:\n{e}") from e

    def save_new_config(self, settings: dict[str, Any]) -> None:
        """
        Writes a fresh config file. Keys missing from `settings` get their
        defaults; `cookie` is the raw `name=value; ...` string.
        """
        parser = configparser.ConfigParser(interpolation=None)
        defaults = ClientConfig()
        parser[SECTION] = {
            key: str(settings.get(key, self._default_ini_value(defaults, key)))
            for key in sorted(ClientConfig.get_ini_keys())
        }
        self.config_file_path.parent.mkdir(parents=True, exist_ok=True)
        self._write(parser)

    @staticmethod
    def _default_ini_value(defaults: ClientConfig, key: str) -> Any:
        return "" if key == "cookie" else getattr(defaults, key)

    def _write(self, parser: configparser.ConfigParser) -> None:
        try:
            with open(self.config_file_path, "w", encoding="utf-8") as f:
                parser.write(f)
        except OSError as e:
            raise ConfigurationError(
                f"Cannot write {self.config_file_path}: {e}"
            ) from e

    def _get_config_as_dict(self) -> dict[str, Any]:
        """
        Reads the section as raw strings; ClientConfig does the type
        conversion so malformed numbers surface as validation errors.
        """
        section = self._parser[SECTION]
        settings: dict[str, Any] = {
            "cookies": parse_cookie_string(section.get("cookie", ""))
        }
        for key in ClientConfig.get_ini_keys() - {"cookie"}:
            if key in section:
                settings[key] = section.get(key)
        return settings

    def _migrate_if_needed(self) -> bool:
        """Fills in keys added since the file was written. Returns True if any were."""
        defaults = ClientConfig()
        section = self._parser[SECTION]
        missing = [k for k in sorted(ClientConfig.get_ini_keys()) if k not in section]
        if not missing:
            return False

        for key in missing:
            section[key] = str(self._default_ini_value(defaults, key))
            log.debug(f"Migrating config: added missing key '{key}'.")

        try:
            self._write(self._parser)
        except ConfigurationError as e:
            log.error(f"Could not save migrated configuration file: {e}")
            return False
        return True
