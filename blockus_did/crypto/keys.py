"""RSA signing key generation and on-disk key store."""

import logging
import os
from pathlib import Path

from cryptography.exceptions import InternalError, UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from blockus_did.crypto.errors import (
    ErrorKind,
    KeyFormatError,
    KeyGenerationError,
    KeyManagerError,
    KeyNotFoundError,
    KeyPersistenceError,
)
from blockus_did.crypto.outcome import Outcome
from blockus_did.crypto.types import KeyPair

logger = logging.getLogger(__name__)

RSA_KEY_SIZE = 2048
RSA_PUBLIC_EXPONENT = 65537
PRIVATE_KEY_FILENAME = "private.pem"
PUBLIC_KEY_FILENAME = "public.pem"
PRIVATE_KEY_MODE = 0o600
_PRIVATE_KEY_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_TRUNC


def generate_key_pair() -> KeyPair:
    """Generate a new RSA-2048 keypair for DID token signing."""
    try:
        private_key = rsa.generate_private_key(
            public_exponent=RSA_PUBLIC_EXPONENT,
            key_size=RSA_KEY_SIZE,
        )
    except (ValueError, UnsupportedAlgorithm, InternalError) as exc:
        raise KeyGenerationError("RSA key generation failed") from exc
    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode()
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return KeyPair(private_key_pem=private_pem, public_key_pem=public_pem)


def save_key_pair(pair: KeyPair, directory: Path | str) -> None:
    """Write ``private.pem`` and ``public.pem`` into ``directory``.

    Existing files are overwritten. The two writes are not atomic: a failure
    after the first write leaves a store that must be regenerated.
    """
    directory = Path(directory)
    private_path = directory / PRIVATE_KEY_FILENAME
    public_path = directory / PUBLIC_KEY_FILENAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
        fd = os.open(private_path, _PRIVATE_KEY_FLAGS, PRIVATE_KEY_MODE)
        with os.fdopen(fd, "w", encoding="ascii") as fh:
            fh.write(pair.private_key_pem)
        # open() keeps the mode of a file that already existed
        private_path.chmod(PRIVATE_KEY_MODE)
        public_path.write_text(pair.public_key_pem, encoding="ascii")
    except (OSError, ValueError) as exc:
        raise KeyPersistenceError(f"Could not write key pair to {directory}") from exc
    logger.info("Saved key pair to %s", directory)


def _read_pem(path: Path) -> str:
    try:
        return path.read_text(encoding="ascii")
    except FileNotFoundError as exc:
        raise KeyNotFoundError(f"Missing key file {path}") from exc
    except UnicodeDecodeError as exc:
        raise KeyFormatError(f"{path} is not ASCII PEM text") from exc
    except (OSError, ValueError) as exc:
        raise KeyPersistenceError(f"Could not read key file {path}") from exc


def load_key_pair(directory: Path | str) -> KeyPair:
    """Read the PEM key pair stored in ``directory``.

    Both halves must parse as RSA keys; whether they belong together is not
    checked here.
    """
    directory = Path(directory)
    private_path = directory / PRIVATE_KEY_FILENAME
    public_path = directory / PUBLIC_KEY_FILENAME
    private_pem = _read_pem(private_path)
    public_pem = _read_pem(public_path)

    try:
        private_key = serialization.load_pem_private_key(
            private_pem.encode("ascii"), password=None
        )
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError(f"{private_path} is not a PEM private key") from exc
    if not isinstance(private_key, rsa.RSAPrivateKey):
        raise KeyFormatError(f"{private_path} is not an RSA private key")

    try:
        public_key = serialization.load_pem_public_key(public_pem.encode("ascii"))
    except (ValueError, UnsupportedAlgorithm) as exc:
        raise KeyFormatError(f"{public_path} is not a PEM public key") from exc
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyFormatError(f"{public_path} is not an RSA public key")

    logger.debug("Loaded key pair from %s", directory)
    return KeyPair(private_key_pem=private_pem, public_key_pem=public_pem)


def try_load_key_pair(directory: Path | str) -> Outcome[KeyPair]:
    """Load the key pair, reporting failure as a value instead of raising."""
    try:
        return Outcome[KeyPair].success(load_key_pair(directory))
    except KeyManagerError as exc:
        return Outcome[KeyPair].failure(exc)


def ensure_key_pair(directory: Path | str) -> KeyPair:
    """Return the stored key pair, or generate and store one if none exists."""
    loaded = try_load_key_pair(directory)
    if loaded.error is not ErrorKind.KEY_NOT_FOUND:
        return loaded.unwrap()

    logger.info("No key pair in %s, generating a new one", directory)
    pair = generate_key_pair()
    save_key_pair(pair, directory)
    return pair
