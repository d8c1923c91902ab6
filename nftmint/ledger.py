from __future__ import annotations

from typing import Any, Dict, List

from .exceptions import ExceedsMaxSupply, InvalidConfiguration, NonexistentToken


class SupplyLedger:
    """Sequential token ids under a hard cap.

    Not thread-safe on its own: the owning Collection serializes every
    check/reserve pair under its lock.
    """

    def __init__(self, max_supply: int):
        if isinstance(max_supply, bool) or not isinstance(max_supply, int) or max_supply <= 0:
            raise InvalidConfiguration()
        self.max_supply = max_supply
        self.current_token_id = 0
        self.owners: Dict[int, str] = {}
        self.balances: Dict[str, int] = {}

    @property
    def remaining(self) -> int:
        return self.max_supply - self.current_token_id

    def check(self, n: int) -> None:
        """Raise ExceedsMaxSupply if ``n`` more tokens would pass the cap."""
        if n <= 0:
            raise ValueError(f"reservation size must be positive, got {n}")
        if self.current_token_id + n > self.max_supply:
            raise ExceedsMaxSupply()

    def reserve(self, owner: str, n: int) -> List[int]:
        """Assign the next ``n`` ids to ``owner``; all or nothing."""
        self.check(n)
        start = self.current_token_id + 1
        ids = list(range(start, start + n))
        for token_id in ids:
            self.owners[token_id] = owner
        self.balances[owner] = self.balances.get(owner, 0) + n
        self.current_token_id += n
        return ids

    def exists(self, token_id: int) -> bool:
        return token_id in self.owners

    def owner_of(self, token_id: int) -> str:
        owner = self.owners.get(token_id)
        if owner is None:
            raise NonexistentToken("invalid token ID")
        return owner

    def balance_of(self, owner: str) -> int:
        return self.balances.get(owner, 0)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "max_supply": self.max_supply,
            "current_token_id": self.current_token_id,
            # JSON object keys must be strings
            "owners": {str(tid): owner for tid, owner in self.owners.items()},
        }

    @staticmethod
    def from_snapshot(s: Dict[str, Any]) -> "SupplyLedger":
        ledger = SupplyLedger(int(s["max_supply"]))
        owners = {int(tid): str(owner) for tid, owner in (s.get("owners", {}) or {}).items()}
        current = int(s.get("current_token_id", 0))
        if current > ledger.max_supply:
            raise InvalidConfiguration("current_token_id exceeds max_supply")
        if sorted(owners) != list(range(1, current + 1)):
            raise InvalidConfiguration("ownership records are not sequential")
        for token_id in sorted(owners):
            ledger.owners[token_id] = owners[token_id]
            ledger.balances[owners[token_id]] = ledger.balances.get(owners[token_id], 0) + 1
        ledger.current_token_id = current
        return ledger
