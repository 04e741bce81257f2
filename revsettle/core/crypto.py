"""
revsettle/core/crypto.py

Ed25519 identity layer.

An account address in revsettle IS an Ed25519 public key:
64-char lowercase hex of the raw 32-byte key. Proving control of an
address means producing a valid signature under that key.

Key contracts:
    address / public_key_hex : @property → 64-char lowercase hex (NO parentheses)
    sign(data)               : bytes → base64url str, no padding
    verify_detached(...)     : @staticmethod — verifies with ONLY an address
    is_address(value)        : structural address check, never raises
"""

import base64
import string
from pathlib import Path

from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

ADDRESS_HEX_LENGTH = 64

_HEX_DIGITS = frozenset(string.hexdigits.lower())


def is_address(value) -> bool:
    """True iff value is a 64-char lowercase hex string."""
    return (
        isinstance(value, str)
        and len(value) == ADDRESS_HEX_LENGTH
        and all(c in _HEX_DIGITS for c in value)
    )


class Ed25519KeyManager:
    """
    Ed25519 key manager. One instance per account (business, issuer,
    bondholder, arbiter, admin) or per journal signer.

    Public surface:
        Ed25519KeyManager.generate()                        → new random key
        Ed25519KeyManager.from_file(path)                   → load PEM private key
        Ed25519KeyManager.from_private_bytes(seed)          → load from raw 32-byte seed
        Ed25519KeyManager.verify_detached(data, sig, addr)  → @staticmethod

        key.address / key.public_key_hex   (@property) → 64-char lowercase hex
        key.sign(data: bytes)              → base64url str (no padding)
        key.verify(data, sig)              → bool
        key.save(path)                     → write PEM private key
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key:    Ed25519PrivateKey = private_key
        self._public_key:     Ed25519PublicKey  = private_key.public_key()
        self._public_key_hex: str = (
            self._public_key
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        """Generate a new random Ed25519 key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Load an Ed25519 private key from a PEM file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid Ed25519 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        pem_bytes = path.read_bytes()
        try:
            private_key = load_pem_private_key(pem_bytes, password=None)
        except Exception as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(
                f"Key file {path} does not contain an Ed25519 private key"
            )
        return cls(private_key)

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "Ed25519KeyManager":
        """
        Load an Ed25519 key from a raw 32-byte seed.
        Raises ValueError if seed is not exactly 32 bytes.
        """
        if len(seed) != 32:
            raise ValueError(
                f"Ed25519 seed must be 32 bytes, got {len(seed)}"
            )
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    # ── Identity ──────────────────────────────────────────────

    @property
    def public_key_hex(self) -> str:
        """64-character lowercase hex of the raw Ed25519 public key."""
        return self._public_key_hex

    @property
    def address(self) -> str:
        """The account address controlled by this key (== public_key_hex)."""
        return self._public_key_hex

    # ── Signing ───────────────────────────────────────────────

    def sign(self, data: bytes) -> str:
        """
        Sign data with Ed25519. Returns base64url string, no '=' padding.
        Caller is responsible for canonicalization.
        """
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    def verify(self, data: bytes, signature_b64: str) -> bool:
        """Verify a signature against this key manager's own address."""
        return Ed25519KeyManager.verify_detached(
            data, signature_b64, self._public_key_hex
        )

    @staticmethod
    def verify_detached(
        data:          bytes,
        signature_b64: str,
        address:       str,
    ) -> bool:
        """
        Verify an Ed25519 signature using ONLY an address (public key hex).

        Returns:
            True if the signature is valid over data for the address.
            False for ANY failure: wrong key, bad encoding, wrong length,
            corrupted signature. Never raises.
        """
        try:
            if not is_address(address):
                return False

            pub = Ed25519PublicKey.from_public_bytes(bytes.fromhex(address))

            # Re-add base64url padding if stripped
            padding    = 4 - len(signature_b64) % 4
            padded_sig = signature_b64 + "=" * (padding % 4)
            raw_sig    = base64.urlsafe_b64decode(padded_sig)

            if len(raw_sig) != 64:
                return False

            pub.verify(raw_sig, data)
            return True

        except Exception:
            return False

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key to disk as a PEM file.
        Creates parent directories if needed.
        Raises RuntimeError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pem = self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
            path.write_bytes(pem)
        except Exception as exc:
            raise RuntimeError(
                f"Failed to save Ed25519 key to {path}: {exc}"
            ) from exc

    def __repr__(self) -> str:
        return (
            f"Ed25519KeyManager(address={self._public_key_hex[:16]}...)"
        )
