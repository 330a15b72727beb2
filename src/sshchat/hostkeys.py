"""SSH host key management.

The server presents three host keys (RSA, ECDSA and Ed25519) stored as
OpenSSH private key files in a single directory. Missing keys are
generated on first start.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import paramiko
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519, rsa

logger = logging.getLogger(__name__)

KEY_FILES = {
    "rsa": "id_rsa",
    "ecdsa": "id_ecdsa",
    "ed25519": "id_ed25519",
}

_KEY_CLASSES: dict[str, type[paramiko.PKey]] = {
    "rsa": paramiko.RSAKey,
    "ecdsa": paramiko.ECDSAKey,
    "ed25519": paramiko.Ed25519Key,
}


def check_host_keys(key_dir: Path | str) -> list[paramiko.PKey]:
    """Load every host key from ``key_dir``.

    Raises:
        HostKeyError: If any key file is missing or cannot be parsed.
    """
    key_dir = Path(key_dir)
    paths = {key_type: key_dir / name for key_type, name in KEY_FILES.items()}

    for path in paths.values():
        if not path.exists():
            raise HostKeyError(f"key file {path} does not exist")

    keys: list[paramiko.PKey] = []
    for key_type, path in paths.items():
        try:
            keys.append(_KEY_CLASSES[key_type].from_private_key_file(str(path)))
        except (OSError, paramiko.SSHException) as e:
            raise HostKeyError(f"failed to parse private key {path}: {e}") from e
    return keys


def generate_host_keys(key_dir: Path | str, rsa_bits: int = 4096) -> None:
    """Create ``key_dir`` and write a fresh RSA, ECDSA and Ed25519 host key.

    Private keys are written in OpenSSH format with mode 0600, each
    alongside a ``.pub`` file in authorized_keys format.

    Raises:
        HostKeyError: If the directory or a key file cannot be written.
    """
    key_dir = Path(key_dir)
    try:
        key_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise HostKeyError(f"failed to create keys directory: {e}") from e

    for key_type, name in KEY_FILES.items():
        path = key_dir / name
        _write_key(path, key_type, rsa_bits)
        logger.info("Generated %s host key: %s", key_type, path)


def load_or_generate_host_keys(key_dir: Path | str, rsa_bits: int = 4096) -> list[paramiko.PKey]:
    """Load the host keys, generating them first if they are missing."""
    try:
        return check_host_keys(key_dir)
    except HostKeyError as e:
        logger.warning("Failed to check SSH keys, generating new ones: %s", e)
    generate_host_keys(key_dir, rsa_bits=rsa_bits)
    return check_host_keys(key_dir)


def _write_key(path: Path, key_type: str, rsa_bits: int) -> None:
    if key_type == "rsa":
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=rsa_bits)
    elif key_type == "ecdsa":
        private_key = ec.generate_private_key(ec.SECP521R1())
    elif key_type == "ed25519":
        private_key = ed25519.Ed25519PrivateKey.generate()
    else:
        raise HostKeyError(f"unsupported key type: {key_type}")

    private_bytes = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.OpenSSH,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_bytes = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(private_bytes)
        path.with_name(path.name + ".pub").write_bytes(public_bytes + b"\n")
    except OSError as e:
        raise HostKeyError(f"failed to write {key_type} key to {path}: {e}") from e


class HostKeyError(Exception):
    """Raised when host keys cannot be loaded or generated."""
