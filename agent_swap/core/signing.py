"""
Wallet key loading and transaction signing.

Jupiter may hand back either wire format. The format is read from the
message prefix byte rather than by trial decoding:

    [compact-u16 signature count][64-byte signatures...][message]

A versioned message starts with a byte whose high bit is set (the low seven
bits carry the version); a legacy message starts with its signer count,
which is always below 128.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from enum import Enum
from typing import Tuple

import base58
from solders.keypair import Keypair
from solders.message import to_bytes_versioned
from solders.pubkey import Pubkey
from solders.transaction import Transaction, VersionedTransaction

from .errors import KeyLoadError, SigningError

logger = logging.getLogger(__name__)

SIGNATURE_LENGTH = 64
SECRET_KEY_LENGTH = 64
VERSION_PREFIX_MASK = 0x80
SUPPORTED_VERSIONS = (0,)


class TransactionFormat(str, Enum):
    LEGACY = "legacy"
    V0 = "v0"


def load_keypair(secret: str) -> Keypair:
    """Load a keypair from a base58 string or a JSON array of 64 bytes."""
    secret = (secret or "").strip()
    if not secret:
        raise KeyLoadError("PRIVATE_KEY environment variable is required")

    if secret.startswith("["):
        try:
            key_bytes = bytes(json.loads(secret))
        except (ValueError, TypeError) as exc:
            raise KeyLoadError("Invalid PRIVATE_KEY: expected a JSON array of 64 bytes") from exc
    else:
        try:
            key_bytes = base58.b58decode(secret)
        except ValueError as exc:
            raise KeyLoadError("Invalid PRIVATE_KEY: expected a base58 encoded secret key") from exc

    if len(key_bytes) != SECRET_KEY_LENGTH:
        raise KeyLoadError(f"Invalid PRIVATE_KEY: expected {SECRET_KEY_LENGTH} bytes, got {len(key_bytes)}")
    try:
        return Keypair.from_bytes(key_bytes)
    except Exception as exc:  # noqa: BLE001 - solders keypair validation
        raise KeyLoadError("Invalid PRIVATE_KEY: public key does not match secret") from exc


def _read_compact_u16(raw: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a compact-u16 at ``offset``; returns (value, bytes consumed)."""
    value = 0
    for index in range(3):
        if offset + index >= len(raw):
            raise SigningError("Transaction truncated in signature count")
        byte = raw[offset + index]
        value |= (byte & 0x7F) << (7 * index)
        if not byte & 0x80:
            return value, index + 1
    raise SigningError("Malformed signature count in transaction")


def detect_transaction_format(raw: bytes) -> TransactionFormat:
    count, consumed = _read_compact_u16(raw)
    prefix_at = consumed + count * SIGNATURE_LENGTH
    if prefix_at >= len(raw):
        raise SigningError("Transaction truncated before message")

    prefix = raw[prefix_at]
    if not prefix & VERSION_PREFIX_MASK:
        return TransactionFormat.LEGACY

    version = prefix & 0x7F
    if version not in SUPPORTED_VERSIONS:
        raise SigningError(f"Unsupported transaction version: {version}")
    return TransactionFormat.V0


class WalletSigner:
    """Holds the wallet keypair for the process lifetime and signs order transactions."""

    def __init__(self, keypair: Keypair):
        self._keypair = keypair

    @classmethod
    def from_secret(cls, secret: str) -> "WalletSigner":
        return cls(load_keypair(secret))

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    @property
    def address(self) -> str:
        return str(self._keypair.pubkey())

    def sign(self, transaction_base64: str) -> str:
        """Sign a base64 transaction in the wallet's signer slot; returns base64."""
        try:
            raw = base64.b64decode(transaction_base64, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise SigningError("Transaction payload is not valid base64") from exc

        tx_format = detect_transaction_format(raw)
        logger.debug("Signing %s transaction (%d bytes)", tx_format.value, len(raw))

        if tx_format == TransactionFormat.V0:
            signed = self._sign_versioned(raw)
        else:
            signed = self._sign_legacy(raw)
        return base64.b64encode(signed).decode("ascii")

    def _sign_versioned(self, raw: bytes) -> bytes:
        try:
            tx = VersionedTransaction.from_bytes(raw)
        except Exception as exc:  # noqa: BLE001 - solders raises BincodeError
            raise SigningError(f"Could not decode versioned transaction: {exc}") from exc

        message = tx.message
        required = message.header.num_required_signatures
        signer_keys = list(message.account_keys[:required])
        try:
            slot = signer_keys.index(self.pubkey)
        except ValueError as exc:
            raise SigningError(f"Wallet {self.address} is not a required signer") from exc

        signatures = list(tx.signatures)
        if len(signatures) < required:
            raise SigningError("Transaction carries fewer signatures than required signers")
        signatures[slot] = self._keypair.sign_message(to_bytes_versioned(message))
        return bytes(VersionedTransaction.populate(message, signatures))

    def _sign_legacy(self, raw: bytes) -> bytes:
        try:
            tx = Transaction.from_bytes(raw)
        except Exception as exc:  # noqa: BLE001 - solders raises BincodeError
            raise SigningError(f"Could not decode legacy transaction: {exc}") from exc

        required = tx.message.header.num_required_signatures
        if self.pubkey not in list(tx.message.account_keys[:required]):
            raise SigningError(f"Wallet {self.address} is not a required signer")

        try:
            tx.partial_sign([self._keypair], tx.message.recent_blockhash)
        except Exception as exc:  # noqa: BLE001 - solders signer errors
            raise SigningError(f"Could not sign legacy transaction: {exc}") from exc
        return bytes(tx)


__all__ = [
    "TransactionFormat",
    "WalletSigner",
    "detect_transaction_format",
    "load_keypair",
]
