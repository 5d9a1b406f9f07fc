"""
Shared fixtures: keep tests away from real API keys and the OS keychain.
"""

import pytest
import keyring
from keyring.errors import PasswordDeleteError

from mdlingo.keys import SERVICES


class MemoryKeyring:
    """In-memory stand-in for the OS keychain."""

    def __init__(self):
        self.store = {}

    def get_password(self, service, username):
        return self.store.get((service, username))

    def set_password(self, service, username, password):
        self.store[(service, username)] = password

    def delete_password(self, service, username):
        if (service, username) not in self.store:
            raise PasswordDeleteError("not found")
        del self.store[(service, username)]


@pytest.fixture(autouse=True)
def isolated_keys(tmp_path, monkeypatch):
    for env_var in SERVICES.values():
        monkeypatch.delenv(env_var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))

    memory = MemoryKeyring()
    monkeypatch.setattr(keyring, "get_password", memory.get_password)
    monkeypatch.setattr(keyring, "set_password", memory.set_password)
    monkeypatch.setattr(keyring, "delete_password", memory.delete_password)
    return memory
