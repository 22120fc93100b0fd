"""
Tests for key loading, wire format detection and transaction signing.

Transactions are built locally with solders so both wire formats are
exercised without any network access.
"""

import base64
import json

import base58
import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message, MessageV0, to_bytes_versioned
from solders.null_signer import NullSigner
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.system_program import TransferParams, transfer
from solders.transaction import Transaction, VersionedTransaction

from agent_swap.core.errors import KeyLoadError, SigningError
from agent_swap.core.signing import (
    TransactionFormat,
    WalletSigner,
    detect_transaction_format,
    load_keypair,
)


def _transfer(from_pubkey: Pubkey, to_pubkey: Pubkey):
    return transfer(TransferParams(from_pubkey=from_pubkey, to_pubkey=to_pubkey, lamports=1_000))


def build_v0(payer: Pubkey, source: Pubkey = None) -> VersionedTransaction:
    source = source or payer
    message = MessageV0.try_compile(payer, [_transfer(source, payer)], [], Hash.new_unique())
    signers = [NullSigner(payer)]
    if source != payer:
        signers.append(NullSigner(source))
    return VersionedTransaction(message, signers)


def build_legacy(payer: Pubkey) -> Transaction:
    message = Message.new_with_blockhash([_transfer(payer, payer)], payer, Hash.new_unique())
    return Transaction.new_unsigned(message)


def encode(tx) -> str:
    return base64.b64encode(bytes(tx)).decode("ascii")


# =============================================================================
# Key loading
# =============================================================================

class TestLoadKeypair:

    def test_base58_secret(self, keypair, secret_b58):
        assert load_keypair(secret_b58).pubkey() == keypair.pubkey()

    def test_json_array_secret(self, keypair):
        secret = json.dumps(list(bytes(keypair)))

        assert load_keypair(secret).pubkey() == keypair.pubkey()

    def test_surrounding_whitespace_ignored(self, keypair, secret_b58):
        assert load_keypair(f"  {secret_b58}\n").pubkey() == keypair.pubkey()

    @pytest.mark.parametrize("secret", ["", "   ", None])
    def test_missing_secret(self, secret):
        with pytest.raises(KeyLoadError):
            load_keypair(secret)

    def test_wrong_length(self):
        short = base58.b58encode(bytes(32)).decode()

        with pytest.raises(KeyLoadError, match="64 bytes"):
            load_keypair(short)

    def test_invalid_base58(self):
        with pytest.raises(KeyLoadError):
            load_keypair("0OIl-not-base58")

    @pytest.mark.parametrize("secret", ["[1, 2", "[300, 1]", '["a"]'])
    def test_invalid_json_array(self, secret):
        with pytest.raises(KeyLoadError):
            load_keypair(secret)

    def test_error_is_configuration_category(self):
        with pytest.raises(KeyLoadError) as exc_info:
            load_keypair("")

        assert exc_info.value.category.value == "configuration"


# =============================================================================
# Format detection
# =============================================================================

class TestDetectTransactionFormat:

    def test_versioned(self, keypair):
        assert detect_transaction_format(bytes(build_v0(keypair.pubkey()))) == TransactionFormat.V0

    def test_legacy(self, keypair):
        assert detect_transaction_format(bytes(build_legacy(keypair.pubkey()))) == TransactionFormat.LEGACY

    def test_handcrafted_legacy_prefix(self):
        raw = bytes([1]) + bytes(64) + bytes([1, 0, 1])

        assert detect_transaction_format(raw) == TransactionFormat.LEGACY

    def test_unsupported_version(self):
        raw = bytes([1]) + bytes(64) + bytes([0x81, 1, 0, 1])

        with pytest.raises(SigningError, match="Unsupported transaction version: 1"):
            detect_transaction_format(raw)

    def test_empty_payload(self):
        with pytest.raises(SigningError):
            detect_transaction_format(b"")

    def test_truncated_before_message(self):
        raw = bytes([2]) + bytes(64)

        with pytest.raises(SigningError, match="truncated"):
            detect_transaction_format(raw)

    def test_multi_byte_signature_count(self):
        # 0x80 0x01 encodes 128 signatures
        raw = bytes([0x80, 0x01]) + bytes(64)

        with pytest.raises(SigningError, match="truncated"):
            detect_transaction_format(raw)

    def test_malformed_signature_count(self):
        with pytest.raises(SigningError):
            detect_transaction_format(bytes([0xFF, 0xFF, 0xFF, 0x01]))


# =============================================================================
# Signing
# =============================================================================

class TestWalletSigner:

    def test_from_secret(self, keypair, secret_b58):
        signer = WalletSigner.from_secret(secret_b58)

        assert signer.address == str(keypair.pubkey())
        assert signer.pubkey == keypair.pubkey()

    def test_signs_versioned_transaction(self, keypair, signer):
        tx = build_v0(keypair.pubkey())

        signed = VersionedTransaction.from_bytes(base64.b64decode(signer.sign(encode(tx))))

        expected = keypair.sign_message(to_bytes_versioned(tx.message))
        assert signed.signatures[0] == expected
        assert bytes(signed.message) == bytes(tx.message)

    def test_signs_only_wallet_slot(self, keypair, signer):
        payer = Keypair().pubkey()
        tx = build_v0(payer, source=keypair.pubkey())
        slot = list(tx.message.account_keys).index(keypair.pubkey())

        signed = VersionedTransaction.from_bytes(base64.b64decode(signer.sign(encode(tx))))

        assert slot == 1
        assert signed.signatures[slot] == keypair.sign_message(to_bytes_versioned(tx.message))
        assert signed.signatures[0] == Signature.default()

    def test_signs_legacy_transaction(self, keypair, signer):
        tx = build_legacy(keypair.pubkey())

        signed = Transaction.from_bytes(base64.b64decode(signer.sign(encode(tx))))

        assert signed.signatures[0] == keypair.sign_message(bytes(tx.message))
        signed.verify()

    def test_not_a_signer_versioned(self, signer):
        tx = build_v0(Keypair().pubkey())

        with pytest.raises(SigningError, match="not a required signer"):
            signer.sign(encode(tx))

    def test_not_a_signer_legacy(self, signer):
        tx = build_legacy(Keypair().pubkey())

        with pytest.raises(SigningError, match="not a required signer"):
            signer.sign(encode(tx))

    def test_invalid_base64(self, signer):
        with pytest.raises(SigningError, match="base64"):
            signer.sign("not base64!!")

    def test_garbage_versioned_bytes(self, signer):
        raw = bytes([1]) + bytes(64) + bytes([0x80, 1, 2, 3])

        with pytest.raises(SigningError):
            signer.sign(base64.b64encode(raw).decode())
