"""Pinned vectors for the mint authorization encoding.

Any change here invalidates signatures that were already issued off-chain.
"""
import hashlib

import pytest
from eth_account import Account
from eth_utils import keccak

from nftmint.exceptions import InvalidAddress, InvalidSignature, InvalidSignatureLength
from nftmint.signing import (
    SIGNATURE_LENGTH,
    contract_address,
    mint_message_digest,
    mint_payload,
    mint_signable_message,
    normalize_address,
    recover_mint_signer,
    sign_mint_authorization,
    signature_bytes,
)

DEPLOYER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
USER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b69690d"
USER = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class TestAddresses:
    """Test address derivation and normalization."""

    def test_well_known_keys(self):
        """Published test keys map to their published addresses."""
        assert Account.from_key(DEPLOYER_KEY).address == DEPLOYER
        assert Account.from_key(USER_KEY).address == USER
        assert Account.from_key(
            "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
        ).address == "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

    @pytest.mark.parametrize("nonce,expected", [
        (0, "0x5FbDB2315678afecb367f032d93F642f64180aa3"),
        (1, "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"),
        (2, "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0"),
    ])
    def test_create_address(self, nonce, expected):
        """CREATE addresses match what a local dev chain assigns."""
        assert contract_address(DEPLOYER, nonce) == expected

    def test_normalize_to_checksum(self):
        """Lowercase input comes back in EIP-55 form."""
        assert normalize_address(USER.lower()) == USER

    @pytest.mark.parametrize("bad", ["", "0x1234", "hello", None, "0x70997970C51812dc3A010C7d01b50e0d17dc79c8"])
    def test_bad_address(self, bad):
        """Malformed addresses and broken checksums are rejected."""
        with pytest.raises(InvalidAddress):
            normalize_address(bad)


class TestEncoding:
    """Test the packed payload and digest layout."""

    def test_packed_payload_layout(self):
        """address | uint256 | uint256 | address, no padding on addresses."""
        expected = bytes.fromhex(
            "70997970c51812dc3a010c7d01b50e0d17dc79c8"
            "0000000000000000000000000000000000000000000000000000000000000003"
            "0000000000000000000000000000000000000000000000000000000000000001"
            "5fbdb2315678afecb367f032d93f642f64180aa3"
        )
        payload = mint_payload(USER, 3, 1, CONTRACT)
        assert len(payload) == 20 + 32 + 32 + 20
        assert payload == expected

    def test_payload_is_order_sensitive(self):
        """Swapping amount and nonce changes the payload."""
        assert mint_payload(USER, 1, 2, CONTRACT) != mint_payload(USER, 2, 1, CONTRACT)

    def test_large_nonce_encodes_full_width(self):
        """The largest uint256 nonce fills all 32 bytes."""
        payload = mint_payload(USER, 1, 2**256 - 1, CONTRACT)
        assert payload[52:84] == b"\xff" * 32

    @pytest.mark.parametrize("amount,nonce", [(-1, 1), (1, -1), (1, 2**256), (True, 1)])
    def test_out_of_range_fields(self, amount, nonce):
        """Values that cannot be a uint256 can never have been signed."""
        with pytest.raises(InvalidSignature):
            mint_payload(USER, amount, nonce, CONTRACT)

    def test_digest_is_keccak_not_sha3(self):
        """The digest is Keccak-256, not NIST SHA3-256."""
        payload = mint_payload(USER, 3, 1, CONTRACT)
        digest = mint_message_digest(USER, 3, 1, CONTRACT)
        assert digest == keccak(payload)
        assert digest != hashlib.sha3_256(payload).digest()
        assert len(digest) == 32

    def test_personal_message_envelope(self):
        """The digest is wrapped as a 32-byte personal message."""
        message = mint_signable_message(USER, 3, 1, CONTRACT)
        assert message.version == b"E"
        assert message.header == b"thereum Signed Message:\n32"
        assert message.body == mint_message_digest(USER, 3, 1, CONTRACT)


class TestSignatures:
    """Test issuing and recovering authorizations."""

    def test_sign_and_recover(self):
        """A signature recovers to the key that made it."""
        sig = sign_mint_authorization(DEPLOYER_KEY, USER, 3, 1, CONTRACT)
        assert len(sig) == SIGNATURE_LENGTH
        assert sig[64] in (27, 28)
        assert recover_mint_signer(USER, 3, 1, CONTRACT, sig) == DEPLOYER

    def test_signing_is_deterministic(self):
        """Signing the same authorization twice gives the same bytes."""
        a = sign_mint_authorization(DEPLOYER_KEY, USER, 3, 1, CONTRACT)
        b = sign_mint_authorization(DEPLOYER_KEY, USER, 3, 1, CONTRACT)
        assert a == b

    def test_tampered_field_recovers_someone_else(self):
        """Changing a signed field changes the recovered signer."""
        sig = sign_mint_authorization(DEPLOYER_KEY, USER, 3, 1, CONTRACT)
        assert recover_mint_signer(USER, 3, 2, CONTRACT, sig) != DEPLOYER

    def test_garbage_signature_raises(self):
        """An invalid recovery id is an invalid signature."""
        # v = 0x05 is neither 0/1 nor 27/28
        with pytest.raises(InvalidSignature):
            recover_mint_signer(USER, 3, 1, CONTRACT, b"\x01" * 64 + b"\x05")

    def test_signature_bytes_accepts_hex(self):
        """Hex strings and bytearrays decode to bytes."""
        assert signature_bytes("0x0aff") == b"\x0a\xff"
        assert signature_bytes(bytearray(b"\x01")) == b"\x01"

    @pytest.mark.parametrize("bad", ["0xzz", "PASSWORD", 12345])
    def test_undecodable_signature_fails_length_check(self, bad):
        """Input that is not a byte string cannot have the fixed signature length."""
        with pytest.raises(InvalidSignatureLength):
            signature_bytes(bad)
