"""
Key management: the three key artifacts and the RSA envelope.

Artifacts in the key directory:
    rspass.pub   ASCII-armored PGP public key (for sharing)
    rspass.key   ASCII-armored PGP secret key, passphrase-protected
    rspass.pem   RSA public key in PKCS#1 PEM, used to seal payloads

Sealing uses the PEM public key with PKCS#1 v1.5 padding and produces
raw ciphertext, one RSA block, no header. Unsealing unlocks the PGP
secret key with the passphrase for the duration of a single call.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union

import pgpy
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pgpy.constants import (
    CompressionAlgorithm,
    HashAlgorithm,
    KeyFlags,
    PubKeyAlgorithm,
    SymmetricKeyAlgorithm,
)
from pgpy.errors import PGPDecryptionError

from .errors import (
    BadConfig,
    DecryptionError,
    EncryptionError,
    InternalError,
    NotInitialized,
    PermissionDenied,
)

logger = logging.getLogger("rspass.keys")

PUBLIC_KEY_FILE = "rspass.pub"
SECRET_KEY_FILE = "rspass.key"
RSA_PUBLIC_KEY_FILE = "rspass.pem"
KEY_FILES = (PUBLIC_KEY_FILE, SECRET_KEY_FILE, RSA_PUBLIC_KEY_FILE)

# PKCS#1 v1.5 padding overhead in bytes, and the minimum PS length.
PKCS1_OVERHEAD = 11
PKCS1_MIN_PADDING = 8


# pgpy exposes no public accessor for the RSA material; these helpers use
# the key-material internals of pgpy 0.6.x (pinned in pyproject.toml).
def _rsa_public_from_pgp(key: pgpy.PGPKey) -> rsa.RSAPublicKey:
    """Extract the RSA public key from a PGP primary key."""
    return key._key.keymaterial.__pubkey__()


def _rsa_private_from_pgp(key: pgpy.PGPKey) -> rsa.RSAPrivateKey:
    """Extract the RSA private key from an unlocked PGP primary key."""
    return key._key.keymaterial.__privkey__()


class KeyManager:
    """Creates, loads and uses the key artifacts in one directory.

    Args:
        key_dir: The ``<config-root>/rspass`` directory.
        key_size: RSA modulus size for ``generate``.
    """

    def __init__(self, key_dir: Path, key_size: int = 2048) -> None:
        self.key_dir = Path(key_dir)
        self.key_size = key_size

    @property
    def public_key_path(self) -> Path:
        return self.key_dir / PUBLIC_KEY_FILE

    @property
    def secret_key_path(self) -> Path:
        return self.key_dir / SECRET_KEY_FILE

    @property
    def rsa_public_key_path(self) -> Path:
        return self.key_dir / RSA_PUBLIC_KEY_FILE

    def is_initialized(self) -> bool:
        return all((self.key_dir / name).is_file() for name in KEY_FILES)

    def generate(self, name: str, email: str, passphrase: str) -> Path:
        """Generate and persist a new keypair.

        Generation is idempotent: if all three artifacts already exist
        nothing is touched.

        Args:
            name: Owner name for the PGP user id.
            email: Owner email for the PGP user id.
            passphrase: Passphrase protecting the secret key.

        Returns:
            Path to the key directory.

        Raises:
            PermissionDenied: If the key directory cannot be created.
            BadConfig: If only part of the keypair is present.
        """
        try:
            self.key_dir.mkdir(parents=True, exist_ok=True)
        except PermissionError as exc:
            raise PermissionDenied(
                f"You don't have permission to create {self.key_dir}"
            ) from exc
        except OSError as exc:
            raise InternalError(f"Failed to create {self.key_dir}: {exc}") from exc

        present = [n for n in KEY_FILES if (self.key_dir / n).exists()]
        if len(present) == len(KEY_FILES):
            logger.info("Keys already present in %s, skipping generation", self.key_dir)
            return self.key_dir
        if present:
            raise BadConfig(
                f"Incomplete keypair in {self.key_dir}: found {', '.join(present)}"
            )

        logger.info("Generating %d-bit RSA keypair for %s <%s>", self.key_size, name, email)
        key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, self.key_size)
        uid = pgpy.PGPUID.new(name, email=email)
        key.add_uid(
            uid,
            usage={
                KeyFlags.Sign,
                KeyFlags.Certify,
                KeyFlags.EncryptCommunications,
                KeyFlags.EncryptStorage,
            },
            hashes=[HashAlgorithm.SHA256, HashAlgorithm.SHA512],
            ciphers=[SymmetricKeyAlgorithm.AES256],
            compression=[CompressionAlgorithm.ZLIB, CompressionAlgorithm.Uncompressed],
        )
        rsa_pem = _rsa_public_from_pgp(key).public_bytes(
            serialization.Encoding.PEM,
            serialization.PublicFormat.PKCS1,
        )
        key.protect(passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)

        self._write_new(self.public_key_path, str(key.pubkey).encode("utf-8"))
        self._write_new(self.secret_key_path, str(key).encode("utf-8"), mode=0o600)
        self._write_new(self.rsa_public_key_path, rsa_pem)

        logger.info("Keypair written to %s (fingerprint %s)", self.key_dir, key.fingerprint)
        return self.key_dir

    def _write_new(self, path: Path, data: bytes, mode: int = 0o644) -> None:
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
        except PermissionError as exc:
            raise PermissionDenied(f"You don't have permission to write {path}") from exc
        except OSError as exc:
            raise InternalError(f"Failed to write {path}: {exc}") from exc

    def _read_artifact(self, path: Path, label: str) -> str:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise NotInitialized(f"{label} not found at {path}") from exc
        except UnicodeDecodeError as exc:
            raise BadConfig(f"Invalid {label} at {path}") from exc
        except PermissionError as exc:
            raise PermissionDenied(f"You don't have permission to read {path}") from exc
        except OSError as exc:
            raise InternalError(f"Failed to read {path}: {exc}") from exc

    def load_public_key(self) -> rsa.RSAPublicKey:
        """Load the RSA public key used for sealing.

        Raises:
            NotInitialized: If ``rspass.pem`` is missing.
            BadConfig: If it is not a valid RSA public key.
        """
        pem = self._read_artifact(self.rsa_public_key_path, "Public RSA key")
        try:
            key = serialization.load_pem_public_key(pem.encode("utf-8"))
        except ValueError as exc:
            raise BadConfig(f"Invalid RSA public key: {exc}") from exc
        if not isinstance(key, rsa.RSAPublicKey):
            raise BadConfig("rspass.pem does not hold an RSA public key")
        return key

    def load_armored_public_key(self) -> str:
        """Return the armored PGP public key, validated.

        Raises:
            NotInitialized: If ``rspass.pub`` is missing.
            BadConfig: If it is not a PGP public key.
        """
        armored = self._read_artifact(self.public_key_path, "Public key")
        try:
            key, _ = pgpy.PGPKey.from_blob(armored)
        except Exception as exc:
            raise BadConfig(f"Invalid public key: {exc}") from exc
        if not key.is_public:
            raise BadConfig("rspass.pub holds a secret key")
        return armored

    def load_private_key(self) -> pgpy.PGPKey:
        """Load the passphrase-locked PGP secret key.

        Raises:
            NotInitialized: If ``rspass.key`` is missing.
            BadConfig: If it cannot be parsed as a secret key.
        """
        armored = self._read_artifact(self.secret_key_path, "Private key")
        try:
            key, _ = pgpy.PGPKey.from_blob(armored)
        except Exception as exc:
            raise BadConfig(f"Invalid private key: {exc}") from exc
        if key.is_public:
            raise BadConfig("rspass.key does not hold a secret key")
        if key.key_algorithm not in (
            PubKeyAlgorithm.RSAEncryptOrSign,
            PubKeyAlgorithm.RSAEncrypt,
        ):
            raise BadConfig(f"Unsupported key algorithm {key.key_algorithm.name}")
        return key

    @contextmanager
    def unlock(
        self, passphrase: str, private_key: Optional[pgpy.PGPKey] = None
    ) -> Iterator[rsa.RSAPrivateKey]:
        """Unlock the secret key for exactly one ``with`` block.

        The PGP key is re-locked as soon as the RSA material is extracted,
        and the extracted key is dropped when the block exits.

        Raises:
            DecryptionError: If the passphrase is wrong.
        """
        key = private_key if private_key is not None else self.load_private_key()
        try:
            with key.unlock(passphrase):
                material = _rsa_private_from_pgp(key)
        except PGPDecryptionError as exc:
            raise DecryptionError("Wrong passphrase for the private key") from exc
        try:
            yield material
        finally:
            del material

    def encrypt(self, plaintext: Union[str, bytes], public_key: rsa.RSAPublicKey) -> bytes:
        """Seal a payload with RSA PKCS#1 v1.5.

        Raises:
            EncryptionError: If the payload does not fit in one RSA block.
        """
        data = plaintext.encode("utf-8") if isinstance(plaintext, str) else plaintext
        limit = public_key.key_size // 8 - PKCS1_OVERHEAD
        if len(data) > limit:
            raise EncryptionError(
                f"Credential payload is {len(data)} bytes; this key seals at most {limit}"
            )
        try:
            return public_key.encrypt(data, padding.PKCS1v15())
        except ValueError as exc:
            raise EncryptionError(f"Encryption failed: {exc}") from exc

    def decrypt(
        self, ciphertext: bytes, passphrase: str, private_key: Optional[pgpy.PGPKey] = None
    ) -> str:
        """Unseal a payload.

        Raises:
            DecryptionError: On a wrong passphrase, tampered or truncated
                ciphertext, or a result that is not valid UTF-8.
        """
        with self.unlock(passphrase, private_key) as rsa_key:
            return self.open_envelope(ciphertext, rsa_key)

    @staticmethod
    def open_envelope(ciphertext: bytes, rsa_key: rsa.RSAPrivateKey) -> str:
        """Unseal with an already unlocked RSA key.

        The RSA operation and the unpadding are done here. The backend's
        PKCS#1 v1.5 decrypt uses implicit rejection and returns synthetic
        plaintext on bad padding.

        Raises:
            DecryptionError: On a length, range or padding mismatch, or a
                result that is not valid UTF-8.
        """
        numbers = rsa_key.private_numbers()
        n = numbers.public_numbers.n
        size = (n.bit_length() + 7) // 8
        if len(ciphertext) != size:
            raise DecryptionError("Ciphertext length does not match the key size")
        c = int.from_bytes(ciphertext, "big")
        if c >= n:
            raise DecryptionError("Decryption failed: corrupted ciphertext")

        # CRT form of pow(c, d, n)
        m1 = pow(c, numbers.dmp1, numbers.p)
        m2 = pow(c, numbers.dmq1, numbers.q)
        h = (numbers.iqmp * (m1 - m2)) % numbers.p
        block = (m2 + h * numbers.q).to_bytes(size, "big")

        # 00 02 PS(>= 8 nonzero bytes) 00 M
        separator = block.find(b"\x00", 2)
        if block[0] != 0 or block[1] != 2 or separator < 2 + PKCS1_MIN_PADDING:
            raise DecryptionError("Decryption failed: corrupted ciphertext")
        try:
            return block[separator + 1:].decode("utf-8")
        except UnicodeDecodeError as exc:
            raise DecryptionError("Decryption failed: payload is not valid text") from exc
