"""
Storage Layer.

This package handles the configuration file and the sources of the login
cookies consumed by the API client.
"""

from .config_manager import ConfigManager
from .credentials import CredentialStore, StaticCredentialStore, parse_cookie_string

__all__ = [
    "ConfigManager",
    "CredentialStore",
    "StaticCredentialStore",
    "parse_cookie_string",
]
