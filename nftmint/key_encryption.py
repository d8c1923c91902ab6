"""Encrypted storage for the mint authority's signing key.

Implements password-based encryption for key material at rest using:
- Scrypt for key derivation (N=2^17, r=8, p=1 - memory-hard, well-vetted)
- ChaCha20-Poly1305 for authenticated encryption

Security considerations:
- Each key file has its own salt and nonce
- File permissions enforced via ensure_mode_600()
- Parameters are intentionally fixed (not configurable) to prevent weakening
"""
from __future__ import annotations

import json
import secrets
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import ChaCha20Poly1305
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

from .exceptions import KeyEncryptionError
from .fs import atomic_write_bytes, ensure_mode_600
from .keys import SignerKeys, dump_signer_key_raw, load_signer_key_raw
from .logging_config import get_deployment_logger

logger = get_deployment_logger()

SCRYPT_N = 2**17  # CPU/memory cost (128MB)
SCRYPT_R = 8      # Block size
SCRYPT_P = 1      # Parallelization
SALT_SIZE = 32    # 256-bit salt
NONCE_SIZE = 12   # ChaCha20-Poly1305 nonce size
KEY_SIZE = 32     # 256-bit key

# Version for future upgrades
ENCRYPTED_KEY_VERSION = 1


@dataclass
class EncryptedKeyFile:
    """Container for encrypted key material."""
    version: int
    salt: bytes
    nonce: bytes
    ciphertext: bytes

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "salt": self.salt.hex(),
            "nonce": self.nonce.hex(),
            "ciphertext": self.ciphertext.hex(),
        }

    @staticmethod
    def from_dict(d: dict) -> "EncryptedKeyFile":
        return EncryptedKeyFile(
            version=int(d["version"]),
            salt=bytes.fromhex(d["salt"]),
            nonce=bytes.fromhex(d["nonce"]),
            ciphertext=bytes.fromhex(d["ciphertext"]),
        )

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), sort_keys=True).encode("utf-8")

    @staticmethod
    def from_bytes(data: bytes) -> "EncryptedKeyFile":
        return EncryptedKeyFile.from_dict(json.loads(data.decode("utf-8")))


def derive_key(password: str, salt: bytes) -> bytes:
    """Derive encryption key from password using Scrypt."""
    kdf = Scrypt(salt=salt, length=KEY_SIZE, n=SCRYPT_N, r=SCRYPT_R, p=SCRYPT_P)
    return kdf.derive(password.encode("utf-8"))


def encrypt_key_material(key_data: bytes, password: str) -> EncryptedKeyFile:
    """Encrypt key material with password."""
    salt = secrets.token_bytes(SALT_SIZE)
    nonce = secrets.token_bytes(NONCE_SIZE)

    cipher = ChaCha20Poly1305(derive_key(password, salt))
    ciphertext = cipher.encrypt(nonce, key_data, associated_data=None)

    return EncryptedKeyFile(
        version=ENCRYPTED_KEY_VERSION,
        salt=salt,
        nonce=nonce,
        ciphertext=ciphertext
    )


def decrypt_key_material(encrypted: EncryptedKeyFile, password: str) -> bytes:
    """Decrypt key material with password."""
    if encrypted.version != ENCRYPTED_KEY_VERSION:
        raise KeyEncryptionError(f"unsupported key file version: {encrypted.version}")

    cipher = ChaCha20Poly1305(derive_key(password, encrypted.salt))
    try:
        return cipher.decrypt(encrypted.nonce, encrypted.ciphertext, associated_data=None)
    except InvalidTag as e:
        raise KeyEncryptionError("decryption failed - wrong password or corrupted file") from e


def is_encrypted_key_file(path: Path) -> bool:
    """Check if a key file is encrypted (vs raw bytes)."""
    data = path.read_bytes()
    # raw secp256k1 keys are exactly 32 bytes
    if len(data) == 32:
        return False
    try:
        d = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        return False
    return isinstance(d, dict) and "version" in d and "salt" in d and "ciphertext" in d


def save_signer_key(path: Path, keys: SignerKeys, password: Optional[str] = None) -> None:
    """Write the signer key, encrypted when a password is given."""
    raw = dump_signer_key_raw(keys)
    if password is not None:
        atomic_write_bytes(path, encrypt_key_material(raw, password).to_bytes())
    else:
        atomic_write_bytes(path, raw)
    ensure_mode_600(str(path))
    logger.debug(f"Saved {'encrypted ' if password is not None else ''}signer key to {path}")


def load_signer_key(path: Path, password: Optional[str] = None) -> SignerKeys:
    """Load the signer key, handling both encrypted and raw formats.

    Raises:
        KeyEncryptionError: If password is wrong or missing for an encrypted key
    """
    if not path.exists():
        raise FileNotFoundError(f"missing key file: {path}")
    if is_encrypted_key_file(path):
        if password is None:
            raise KeyEncryptionError("password required for encrypted keys")
        raw = decrypt_key_material(EncryptedKeyFile.from_bytes(path.read_bytes()), password)
    else:
        raw = path.read_bytes()
    return load_signer_key_raw(raw)


def encrypt_existing_key(path: Path, password: str) -> None:
    """Encrypt an unencrypted signer key in place."""
    if is_encrypted_key_file(path):
        raise KeyEncryptionError("key is already encrypted")
    save_signer_key(path, load_signer_key(path), password)
    logger.info(f"Encrypted existing signer key at {path}")


def change_key_password(path: Path, old_password: str, new_password: str) -> None:
    """Re-encrypt the signer key under a new password."""
    keys = load_signer_key(path, old_password)
    save_signer_key(path, keys, new_password)
    logger.info(f"Changed key password for {path}")
