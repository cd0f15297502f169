"""
invoicepay/core/crypto.py

Payer key handling — Ed25519 via `cryptography`.

Key contracts:
    pubkey              : @property → solders Pubkey (NO parentheses)
    sign(data)          : bytes → raw 64-byte Ed25519 signature
    sign_message(msg)   : solders Message → solders Signature over bytes(msg)
    from_file(path)     : Solana CLI keypair file, JSON array of 64 ints
                          (32-byte seed followed by the 32-byte public key)

The public half stored in a keypair file MUST match the seed. A mismatch
means the file is corrupt and is rejected, never silently re-derived.
"""

import json
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
)
from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature


_SEED_LENGTH    = 32
_KEYPAIR_LENGTH = 64


class PayerKeypair:
    """
    Ed25519 signer for settlement transactions.

    Public surface:
        PayerKeypair.generate()             → new random key
        PayerKeypair.from_file(path)        → load Solana CLI keypair file
        PayerKeypair.from_seed(seed)        → load from raw 32-byte seed

        key.pubkey          (@property) → solders Pubkey
        key.sign(data)                  → raw 64-byte signature
        key.sign_message(message)       → solders Signature
        key.save(path)                  → write Solana CLI keypair file
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key: Ed25519PrivateKey = private_key
        self._public_key:  Ed25519PublicKey  = private_key.public_key()
        self._public_bytes: bytes = self._public_key.public_bytes(
            Encoding.Raw, PublicFormat.Raw
        )
        self._pubkey: Pubkey = Pubkey(self._public_bytes)

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "PayerKeypair":
        """Generate a new random Ed25519 key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "PayerKeypair":
        """
        Load from a raw 32-byte seed.
        Raises ValueError if seed is not exactly 32 bytes.
        """
        if len(seed) != _SEED_LENGTH:
            raise ValueError(
                f"Ed25519 seed must be {_SEED_LENGTH} bytes, got {len(seed)}"
            )
        return cls(Ed25519PrivateKey.from_private_bytes(bytes(seed)))

    @classmethod
    def from_file(cls, path: Path) -> "PayerKeypair":
        """
        Load a Solana CLI keypair file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid 64-byte keypair.
        """
        path = Path(path).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Keypair file not found: {path}")
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
            if not isinstance(raw, list):
                raise TypeError(f"expected a list, got {type(raw).__name__}")
            key_bytes = bytes(raw)
        except (ValueError, TypeError) as exc:
            raise ValueError(
                f"Keypair file {path} is not a JSON array of bytes: {exc}"
            ) from exc

        if len(key_bytes) != _KEYPAIR_LENGTH:
            raise ValueError(
                f"Keypair file {path} must hold {_KEYPAIR_LENGTH} bytes, "
                f"got {len(key_bytes)}"
            )

        keypair = cls.from_seed(key_bytes[:_SEED_LENGTH])
        if keypair._public_bytes != key_bytes[_SEED_LENGTH:]:
            raise ValueError(
                f"Keypair file {path} public key does not match its seed"
            )
        return keypair

    # ── Public Key ────────────────────────────────────────────

    @property
    def pubkey(self) -> Pubkey:
        return self._pubkey

    # ── Signing ───────────────────────────────────────────────

    def sign(self, data: bytes) -> bytes:
        """Sign raw bytes. Returns the 64-byte Ed25519 signature."""
        return self._private_key.sign(data)

    def sign_message(self, message: Message) -> Signature:
        """Sign a serialized transaction message."""
        return Signature(self.sign(bytes(message)))

    # ── Persistence ───────────────────────────────────────────

    def to_bytes(self) -> bytes:
        """
        Seed followed by public key, the Solana CLI keypair encoding.
        Use only for secure backup — never log or transmit.
        """
        seed = self._private_key.private_bytes(
            encoding=             Encoding.Raw,
            format=               PrivateFormat.Raw,
            encryption_algorithm= NoEncryption(),
        )
        return seed + self._public_bytes

    def save(self, path: Path) -> None:
        """
        Write the keypair as a Solana CLI JSON file.
        Creates parent directories if needed.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(list(self.to_bytes())), encoding="utf-8")

    def __repr__(self) -> str:
        return f"PayerKeypair(pubkey={self._pubkey})"
