"""Shared test fixtures for blockus-did."""

from pathlib import Path

import pytest

from blockus_did.crypto.keys import generate_key_pair
from blockus_did.crypto.types import KeyPair


@pytest.fixture(scope="session")
def key_pair() -> KeyPair:
    """One RSA keypair shared across the session."""
    return generate_key_pair()


@pytest.fixture(scope="session")
def other_key_pair() -> KeyPair:
    """A second, unrelated RSA keypair."""
    return generate_key_pair()


@pytest.fixture(autouse=True)
def _clear_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Isolate tests from ambient BLOCKUS_* variables and .env files."""
    monkeypatch.chdir(tmp_path)
    for name in (
        "BLOCKUS_API_URL",
        "BLOCKUS_API_KEY",
        "BLOCKUS_API_PROJECT",
        "BLOCKUS_REDIRECT_URL",
        "BLOCKUS_ISS",
        "BLOCKUS_KEY_DIR",
        "BLOCKUS_TOKEN_TTL",
        "BLOCKUS_HTTP_TIMEOUT",
    ):
        monkeypatch.delenv(name, raising=False)
