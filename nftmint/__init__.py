__version__ = "0.1.0"

from .config import Config, CollectionConfig, get_config, set_config, load_config, reset_config
from .exceptions import (
    MintError,
    InvalidConfiguration,
    InvalidAddress,
    ExceedsPerTxLimit,
    IncorrectPayment,
    ExceedsMaxSupply,
    SetAlreadyClaimed,
    InvalidSignatureLength,
    InvalidSignature,
    SignatureAlreadyUsed,
    NonceAlreadyUsed,
    NonexistentToken,
    DeploymentError,
    KeyEncryptionError,
)
from .collection import Collection, MintEvent, MINT, MINT_SET

__all__ = [
    "Config",
    "CollectionConfig",
    "get_config",
    "set_config",
    "load_config",
    "reset_config",
    "Collection",
    "MintEvent",
    "MINT",
    "MINT_SET",
    "MintError",
    "InvalidConfiguration",
    "InvalidAddress",
    "ExceedsPerTxLimit",
    "IncorrectPayment",
    "ExceedsMaxSupply",
    "SetAlreadyClaimed",
    "InvalidSignatureLength",
    "InvalidSignature",
    "SignatureAlreadyUsed",
    "NonceAlreadyUsed",
    "NonexistentToken",
    "DeploymentError",
    "KeyEncryptionError",
]
