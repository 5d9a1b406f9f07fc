"""
API key management for mdlingo.

Provides storage and retrieval of API keys using:
1. Environment variables (preferred for CI/production)
2. OS keychain via keyring (secure local storage)
3. Local key file (fallback)

Usage:
    from mdlingo.keys import KeyManager

    km = KeyManager()
    km.set_key("anthropic", "sk-...")
    key = km.get_key("anthropic")
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import keyring
from keyring.errors import KeyringError

from mdlingo.errors import InvalidConfigError

logger = logging.getLogger(__name__)


# Supported services and their env var names
SERVICES = {
    "anthropic": "ANTHROPIC_API_KEY",
    "gemini": "GOOGLE_API_KEY",
    "openai": "OPENAI_API_KEY",
}


@dataclass
class KeyInfo:
    """Information about an API key."""
    service: str
    is_set: bool
    source: str  # 'env', 'keyring', 'file', 'none'
    masked_value: str  # e.g., "sk-a...wxyz"


def env_var_for(service: str) -> str:
    return SERVICES.get(service, f"{service.upper()}_API_KEY")


class KeyManager:
    """Manage API keys.

    Priority order for key retrieval:
    1. Environment variable
    2. OS keychain (via keyring)
    3. Local key file (~/.mdlingo/keys.json)
    """

    SERVICE_NAME = "mdlingo"

    def __init__(self, key_file: Path | None = None):
        self.key_file = key_file or Path.home() / ".mdlingo" / "keys.json"

    def _read_file(self) -> dict[str, str]:
        if not self.key_file.exists():
            return {}
        try:
            return json.loads(self.key_file.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise InvalidConfigError(
                f"Key file is not valid JSON: {self.key_file}",
                hint="Fix or delete the file and set the key again.",
            ) from e

    def _write_file(self, data: dict[str, str]) -> None:
        self.key_file.parent.mkdir(parents=True, exist_ok=True)
        self.key_file.write_text(json.dumps(data, indent=2), encoding="utf-8")
        self.key_file.chmod(0o600)

    def _from_keyring(self, service: str) -> Optional[str]:
        try:
            return keyring.get_password(self.SERVICE_NAME, service)
        except KeyringError as e:
            logger.debug("Keyring unavailable: %s", e)
            return None

    def lookup(self, service: str) -> tuple[Optional[str], str]:
        """Return (key, source) for a service; source is 'none' if unset."""
        service = service.lower()

        if env_val := os.getenv(env_var_for(service)):
            return env_val, "env"
        if key := self._from_keyring(service):
            return key, "keyring"
        if key := self._read_file().get(service):
            return key, "file"
        return None, "none"

    def get_key(self, service: str) -> Optional[str]:
        """Get API key for a service, or None if not found."""
        return self.lookup(service)[0]

    def set_key(self, service: str, key: str, use_keyring: bool = True) -> str:
        """Store API key for a service.

        Returns:
            Storage location used ('keyring' or 'file')
        """
        service = service.lower()

        if use_keyring:
            try:
                keyring.set_password(self.SERVICE_NAME, service, key)
                return "keyring"
            except KeyringError as e:
                logger.warning("Keyring unavailable (%s), storing key in %s", e, self.key_file)

        data = self._read_file()
        data[service] = key
        self._write_file(data)
        return "file"

    def delete_key(self, service: str) -> bool:
        """Delete stored API key for a service."""
        service = service.lower()
        deleted = False

        try:
            keyring.delete_password(self.SERVICE_NAME, service)
            deleted = True
        except KeyringError:
            pass  # not stored there

        data = self._read_file()
        if service in data:
            del data[service]
            self._write_file(data)
            deleted = True

        return deleted

    def get_key_info(self, service: str) -> KeyInfo:
        """Get information about a stored key."""
        key, source = self.lookup(service)
        return KeyInfo(
            service=service.lower(),
            is_set=key is not None,
            source=source,
            masked_value=mask_key(key) if key else "",
        )

    def list_keys(self) -> list[KeyInfo]:
        """List all known services and their key status."""
        return [self.get_key_info(service) for service in SERVICES]


def mask_key(key: str) -> str:
    """Mask a key for display (show first 4 and last 4 chars)."""
    if len(key) <= 12:
        return "*" * len(key)
    return f"{key[:4]}...{key[-4:]}"


def require_key(service: str, manager: KeyManager | None = None) -> str:
    """Get API key or raise InvalidConfigError if not found."""
    key = (manager or KeyManager()).get_key(service)
    if not key:
        raise InvalidConfigError(
            f"API key for '{service}' not found.",
            hint=f"Set {env_var_for(service)} or run: mdlingo keys set {service}",
        )
    return key
