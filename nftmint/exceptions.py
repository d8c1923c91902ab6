"""Error hierarchy for nftmint.

Every rejection carries a ``reason``: the caller-visible string a wallet or
calling contract would see as the revert reason.
"""
from __future__ import annotations


class MintError(Exception):
    """Base class for all collection rejections."""

    default_reason = "mint rejected"

    def __init__(self, reason: str | None = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class InvalidConfiguration(MintError):
    default_reason = "The number of tokens must be greater than zero"


class InvalidAddress(MintError):
    default_reason = "Invalid address"


class ExceedsPerTxLimit(MintError):
    default_reason = "Exceeds maximum tokens per transaction"


class IncorrectPayment(MintError):
    default_reason = "Ether value sent is not correct"


class ExceedsMaxSupply(MintError):
    default_reason = "Exceeds maximum supply of tokens"


class SetAlreadyClaimed(MintError):
    default_reason = "Address has already minted a set"


class InvalidSignatureLength(MintError):
    default_reason = "Incorrect signature length"


class InvalidSignature(MintError):
    default_reason = "Invalid signature!"


class SignatureAlreadyUsed(MintError):
    default_reason = "Signature already used"


class NonceAlreadyUsed(MintError):
    default_reason = "Nonce already used"


class NonexistentToken(MintError):
    default_reason = "URI query for nonexistent token"


class DeploymentError(Exception):
    """Deployment directory is missing, corrupt or already initialized."""
    pass


class KeyEncryptionError(Exception):
    """Error during key encryption/decryption."""
    pass
