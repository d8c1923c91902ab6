"""Mint authorization signatures.

An off-chain authority approves a ``(caller, amount, nonce)`` triple for one
specific collection by signing::

    digest = keccak256(abi.encodePacked(address caller, uint256 amount,
                                        uint256 nonce, address contract))

wrapped in the EIP-191 personal-message envelope
(``"\\x19Ethereum Signed Message:\\n32" + digest``). This is byte-for-byte what
``ethers.solidityPackedKeccak256`` + ``signer.signMessage(bytes)`` produce, so
signatures issued by existing wallet tooling verify here unchanged. Changing
the encoding silently invalidates every signature already handed out; the
layout is pinned by tests.
"""
from __future__ import annotations

from typing import Union

import rlp
from eth_abi.packed import encode_packed
from eth_account import Account
from eth_account.messages import SignableMessage, encode_defunct
from eth_keys.exceptions import BadSignature, ValidationError as KeyValidationError
from eth_utils import is_address, keccak, to_bytes, to_canonical_address, to_checksum_address

from .exceptions import InvalidAddress, InvalidSignature, InvalidSignatureLength

MINT_PAYLOAD_TYPES = ("address", "uint256", "uint256", "address")
UINT256_MAX = 2**256 - 1
# r (32) + s (32) + v (1)
SIGNATURE_LENGTH = 65

SignatureLike = Union[bytes, bytearray, str]


def normalize_address(address: str) -> str:
    """Return the EIP-55 checksum form of ``address`` or raise InvalidAddress."""
    if not isinstance(address, str) or not is_address(address):
        raise InvalidAddress(f"Invalid address: {address!r}")
    return to_checksum_address(address)


def signature_bytes(signature: SignatureLike) -> bytes:
    """Accept raw bytes or a 0x-prefixed hex string.

    Anything that does not decode to a byte string cannot be a
    SIGNATURE_LENGTH-byte signature and fails the length check.
    """
    if isinstance(signature, (bytes, bytearray)):
        return bytes(signature)
    if isinstance(signature, str):
        try:
            return to_bytes(hexstr=signature)
        except ValueError as e:
            raise InvalidSignatureLength() from e
    raise InvalidSignatureLength()


def _require_uint256(value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= UINT256_MAX:
        raise InvalidSignature()
    return value


def mint_payload(caller: str, amount: int, nonce: int, contract: str) -> bytes:
    """Packed encoding of the fields an authorization covers, in signing order."""
    return encode_packed(
        list(MINT_PAYLOAD_TYPES),
        [
            normalize_address(caller),
            _require_uint256(amount),
            _require_uint256(nonce),
            normalize_address(contract),
        ],
    )


def mint_message_digest(caller: str, amount: int, nonce: int, contract: str) -> bytes:
    """keccak256 of the packed payload (32 bytes)."""
    return keccak(mint_payload(caller, amount, nonce, contract))


def mint_signable_message(caller: str, amount: int, nonce: int, contract: str) -> SignableMessage:
    return encode_defunct(primitive=mint_message_digest(caller, amount, nonce, contract))


def sign_mint_authorization(private_key, caller: str, amount: int, nonce: int, contract: str) -> bytes:
    """Issue a 65-byte authorization for ``caller`` to mint ``amount`` on ``contract``."""
    message = mint_signable_message(caller, amount, nonce, contract)
    signed = Account.sign_message(message, private_key=private_key)
    return bytes(signed.signature)


def recover_mint_signer(caller: str, amount: int, nonce: int, contract: str, signature: SignatureLike) -> str:
    """Recover the checksum address that produced ``signature``.

    Raises InvalidSignature when no public key can be recovered.
    """
    message = mint_signable_message(caller, amount, nonce, contract)
    try:
        return Account.recover_message(message, signature=signature_bytes(signature))
    except (BadSignature, KeyValidationError, ValueError) as e:
        raise InvalidSignature() from e


def contract_address(deployer: str, nonce: int) -> str:
    """Address a CREATE from ``deployer`` at account nonce ``nonce`` lands on."""
    sender = to_canonical_address(normalize_address(deployer))
    return to_checksum_address(keccak(rlp.encode([sender, int(nonce)]))[12:])
