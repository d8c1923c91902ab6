from __future__ import annotations

from dataclasses import dataclass

from eth_account import Account
from eth_account.signers.local import LocalAccount


@dataclass
class SignerKeys:
    """secp256k1 key of the authority that signs mint authorizations."""
    account: LocalAccount

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def private_key(self) -> bytes:
        return bytes(self.account.key)


def gen_signer_keys() -> SignerKeys:
    return SignerKeys(account=Account.create())


def load_signer_key_raw(raw: bytes) -> SignerKeys:
    if len(raw) != 32:
        raise ValueError(f"signer key must be 32 bytes, got {len(raw)}")
    return SignerKeys(account=Account.from_key(raw))


def dump_signer_key_raw(keys: SignerKeys) -> bytes:
    return keys.private_key
