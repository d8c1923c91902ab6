from __future__ import annotations

from typing import Any, Dict, Set

from .exceptions import NonceAlreadyUsed, SignatureAlreadyUsed


class ReplayGuard:
    """Consumed nonces and consumed raw signatures.

    Both sets only grow. A signature or a nonce being consumed is enough on
    its own to block a later authorization.
    """

    def __init__(self):
        self.used_nonces: Set[int] = set()
        self.used_signatures: Set[bytes] = set()

    def check(self, signature: bytes, nonce: int) -> None:
        if signature in self.used_signatures:
            raise SignatureAlreadyUsed()
        if nonce in self.used_nonces:
            raise NonceAlreadyUsed()

    def consume(self, signature: bytes, nonce: int) -> None:
        self.used_signatures.add(signature)
        self.used_nonces.add(nonce)

    def snapshot(self) -> Dict[str, Any]:
        return {
            # nonces are uint256; kept as decimal strings so JSON readers don't lose precision
            "used_nonces": sorted(str(n) for n in self.used_nonces),
            "used_signatures": sorted("0x" + s.hex() for s in self.used_signatures),
        }

    @staticmethod
    def from_snapshot(s: Dict[str, Any]) -> "ReplayGuard":
        guard = ReplayGuard()
        guard.used_nonces = {int(n) for n in s.get("used_nonces", [])}
        guard.used_signatures = {bytes.fromhex(str(h)[2:] if str(h).startswith("0x") else str(h)) for h in s.get("used_signatures", [])}
        return guard
