"""Mint orchestration for a fixed-supply collection.

Three ways in: ``mint`` (paid, per-token price), ``mint_set`` (fixed bundle at
a fixed price, once per address) and ``signed_mint`` (free, authorized by an
off-chain signature over caller, amount, nonce and this collection's
address).

Each entry point is one atomic call: every check runs before anything is
written, and the checks plus the commit happen under a single lock, so a
rejected call leaves no trace and concurrent callers cannot interleave a
supply check with another caller's reservation.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import asdict, dataclass, replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

from .config import CollectionConfig
from .exceptions import (
    ExceedsPerTxLimit,
    IncorrectPayment,
    InvalidConfiguration,
    InvalidSignature,
    InvalidSignatureLength,
    MintError,
    NonexistentToken,
    SetAlreadyClaimed,
)
from .ledger import SupplyLedger
from .logging_config import Timer, get_collection_logger
from .replay import ReplayGuard
from .signing import (
    SIGNATURE_LENGTH,
    SignatureLike,
    contract_address,
    normalize_address,
    recover_mint_signer,
    signature_bytes,
)

logger = get_collection_logger()

MINT = "Mint"
MINT_SET = "MintSet"

SNAPSHOT_VERSION = 1


@dataclass
class MintEvent:
    kind: str  # MINT or MINT_SET
    caller: str
    token_ids: List[int]

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "caller": self.caller, "token_ids": list(self.token_ids)}

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "MintEvent":
        return MintEvent(
            kind=str(d["kind"]),
            caller=str(d["caller"]),
            token_ids=[int(t) for t in d.get("token_ids", [])],
        )


def _require(cond: bool, err: MintError) -> None:
    if not cond:
        raise err


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _validate_config(config: CollectionConfig) -> None:
    _require(_is_int(config.max_supply) and config.max_supply > 0, InvalidConfiguration())
    _require(_is_int(config.max_mint_per_tx) and config.max_mint_per_tx > 0,
             InvalidConfiguration("max_mint_per_tx must be greater than zero"))
    _require(_is_int(config.set_size) and config.set_size > 0,
             InvalidConfiguration("set_size must be greater than zero"))
    _require(_is_int(config.token_price) and config.token_price >= 0,
             InvalidConfiguration("token_price must not be negative"))
    _require(_is_int(config.set_price) and config.set_price >= 0,
             InvalidConfiguration("set_price must not be negative"))
    _require(isinstance(config.base_uri, str), InvalidConfiguration("base_uri must be a string"))


class Collection:
    """A deployed collection: configuration plus all mint state."""

    def __init__(
        self,
        config: CollectionConfig,
        *,
        owner: str,
        signer: Optional[str] = None,
        address: Optional[str] = None,
    ):
        _validate_config(config)
        self._config = replace(config)
        self.owner = normalize_address(owner)
        # The deployer signs authorizations unless a dedicated signer is given.
        self.signer = normalize_address(signer) if signer else self.owner
        self.address = normalize_address(address) if address else contract_address(self.owner, 0)

        self._ledger = SupplyLedger(config.max_supply)
        self._replay = ReplayGuard()
        self._set_claimed: Set[str] = set()
        self._treasury = 0
        self._events: List[MintEvent] = []
        self._listeners: List[Callable[[MintEvent], None]] = []
        self._lock = threading.RLock()

    # ---------- configuration ----------

    @property
    def config(self) -> CollectionConfig:
        return replace(self._config)

    @property
    def max_supply(self) -> int:
        return self._config.max_supply

    @property
    def max_mint_per_tx(self) -> int:
        return self._config.max_mint_per_tx

    @property
    def token_price(self) -> int:
        return self._config.token_price

    @property
    def set_price(self) -> int:
        return self._config.set_price

    @property
    def set_size(self) -> int:
        return self._config.set_size

    @property
    def base_uri(self) -> str:
        return self._config.base_uri

    # ---------- queries ----------

    @property
    def current_token_id(self) -> int:
        with self._lock:
            return self._ledger.current_token_id

    @property
    def treasury(self) -> int:
        """Total payment accepted so far."""
        with self._lock:
            return self._treasury

    @property
    def events(self) -> List[MintEvent]:
        with self._lock:
            return list(self._events)

    def owner_of(self, token_id: int) -> str:
        with self._lock:
            return self._ledger.owner_of(token_id)

    def balance_of(self, address: str) -> int:
        address = normalize_address(address)
        with self._lock:
            return self._ledger.balance_of(address)

    def token_uri(self, token_id: int) -> str:
        with self._lock:
            _require(self._ledger.exists(token_id), NonexistentToken())
        return f"{self._config.base_uri}{int(token_id)}"

    def has_minted_set(self, address: str) -> bool:
        address = normalize_address(address)
        with self._lock:
            return address in self._set_claimed

    def is_nonce_used(self, nonce: int) -> bool:
        with self._lock:
            return nonce in self._replay.used_nonces

    def is_signature_used(self, signature: SignatureLike) -> bool:
        sig = signature_bytes(signature)
        with self._lock:
            return sig in self._replay.used_signatures

    def subscribe(self, listener: Callable[[MintEvent], None]) -> None:
        """Call ``listener`` with every MintEvent once its mint has committed."""
        with self._lock:
            self._listeners.append(listener)

    # ---------- mint entry points ----------

    def mint(self, caller: str, amount: int, *, value: int) -> List[int]:
        """Paid mint of ``amount`` tokens at ``token_price`` each."""
        caller = normalize_address(caller)
        with self._rejections("mint", caller), self._lock:
            self._check_amount(amount)
            _require(_is_int(value) and value == amount * self._config.token_price, IncorrectPayment())
            self._ledger.check(amount)

            ids = self._ledger.reserve(caller, amount)
            self._treasury += value
            event = self._record(MINT, caller, ids)
        self._notify(event)
        return ids

    def mint_set(self, caller: str, *, value: int) -> List[int]:
        """Mint one bundle of ``set_size`` tokens for ``set_price``. Once per address."""
        caller = normalize_address(caller)
        with self._rejections("mint_set", caller), self._lock:
            _require(_is_int(value) and value == self._config.set_price, IncorrectPayment("Incorrect value for minting set"))
            _require(caller not in self._set_claimed, SetAlreadyClaimed())
            self._ledger.check(self._config.set_size)

            self._set_claimed.add(caller)
            ids = self._ledger.reserve(caller, self._config.set_size)
            self._treasury += value
            event = self._record(MINT_SET, caller, ids)
        self._notify(event)
        return ids

    def signed_mint(self, caller: str, amount: int, nonce: int, signature: SignatureLike, *, value: int = 0) -> List[int]:
        """Free mint authorized by ``signer`` for exactly (caller, amount, nonce, address).

        Signature and replay checks precede the per-transaction limit here,
        unlike ``mint``; callers observe the difference through which error
        a doubly-invalid request gets.
        """
        caller = normalize_address(caller)
        with self._rejections("signed_mint", caller):
            sig = signature_bytes(signature)
            _require(len(sig) == SIGNATURE_LENGTH, InvalidSignatureLength())
            with Timer(logger, "signature recovery"):
                recovered = recover_mint_signer(caller, amount, nonce, self.address, sig)
            _require(recovered == self.signer, InvalidSignature())

            with self._lock:
                self._replay.check(sig, nonce)
                self._check_amount(amount)
                _require(_is_int(value) and value == 0, IncorrectPayment())
                self._ledger.check(amount)

                self._replay.consume(sig, nonce)
                ids = self._ledger.reserve(caller, amount)
                event = self._record(MINT, caller, ids)
        self._notify(event)
        return ids

    # ---------- internals ----------

    def _check_amount(self, amount: int) -> None:
        _require(_is_int(amount) and 1 <= amount <= self._config.max_mint_per_tx, ExceedsPerTxLimit())

    def _record(self, kind: str, caller: str, ids: List[int]) -> MintEvent:
        event = MintEvent(kind=kind, caller=caller, token_ids=list(ids))
        self._events.append(event)
        logger.info(f"{kind}: {len(ids)} token(s) {ids[0]}..{ids[-1]} to {caller} "
                    f"(supply {self._ledger.current_token_id}/{self._config.max_supply})")
        return event

    def _notify(self, event: MintEvent) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception as e:
                # the mint is already committed; a failing observer cannot undo it
                logger.error(f"Mint listener {listener!r} failed: {type(e).__name__}: {e}")

    @contextmanager
    def _rejections(self, op: str, caller: str) -> Iterator[None]:
        try:
            yield
        except MintError as e:
            logger.debug(f"{op} rejected for {caller}: {e.reason}")
            raise

    # ---------- persistence ----------

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "version": SNAPSHOT_VERSION,
                "address": self.address,
                "owner": self.owner,
                "signer": self.signer,
                "config": asdict(self._config),
                "ledger": self._ledger.snapshot(),
                "replay": self._replay.snapshot(),
                "set_claimed": sorted(self._set_claimed),
                "treasury": self._treasury,
            }

    @staticmethod
    def from_snapshot(s: Dict[str, Any], *, events: Optional[List[MintEvent]] = None) -> "Collection":
        _require(int(s.get("version", 0)) == SNAPSHOT_VERSION,
                 InvalidConfiguration(f"unsupported snapshot version: {s.get('version')}"))
        config = CollectionConfig(**s["config"])
        c = Collection(
            config,
            owner=str(s["owner"]),
            signer=str(s["signer"]),
            address=str(s["address"]),
        )
        ledger = SupplyLedger.from_snapshot(s["ledger"])
        _require(ledger.max_supply == config.max_supply, InvalidConfiguration("ledger max_supply mismatch"))
        c._ledger = ledger
        c._replay = ReplayGuard.from_snapshot(s.get("replay", {}) or {})
        c._set_claimed = {normalize_address(a) for a in s.get("set_claimed", [])}
        c._treasury = int(s.get("treasury", 0))
        c._events = list(events or [])
        return c
