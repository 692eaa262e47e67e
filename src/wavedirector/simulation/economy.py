# Created by Matthew Valancy
# Copyright 2026 Valpatel Software LLC
# Licensed under AGPL-3.0 — see LICENSE for details.
"""Economy — the player's funds ledger.

Every change to funds goes through ``process_transaction``.  Credits are
clamped at ``max_funds``.  A debit larger than the balance is refused
when debt is disabled: the balance is left untouched, a
``transaction_failed`` event is published and the call returns False.
Successful transactions are appended to a bounded history and announced
with ``money_changed``.
"""

from __future__ import annotations

import enum
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from loguru import logger

from .errors import InsufficientFundsError

if TYPE_CHECKING:
    from wavedirector.comms.event_bus import EventBus


class TransactionType(str, enum.Enum):
    GAME_START = "game_start"
    UNIT_KILL = "unit_kill"
    ROUND_COMPLETE = "round_complete"
    PASSIVE_INCOME = "passive_income"
    PURCHASE = "purchase"
    UPGRADE = "upgrade"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"


_REASON_KINDS = {
    "unit_kill": TransactionType.UNIT_KILL,
    "round_reward": TransactionType.ROUND_COMPLETE,
    "completion_bonus": TransactionType.PASSIVE_INCOME,
    "passive_income": TransactionType.PASSIVE_INCOME,
    "refund": TransactionType.REFUND,
}


@dataclass(frozen=True)
class Transaction:
    kind: TransactionType
    reason: str
    amount: int
    balance_after: int
    timestamp: float

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "reason": self.reason,
            "amount": self.amount,
            "balance_after": self.balance_after,
            "timestamp": round(self.timestamp, 3),
        }


class Economy:
    """Funds ledger with failure notification."""

    def __init__(
        self,
        event_bus: EventBus | None = None,
        starting_funds: int = 300,
        max_funds: int = 99999,
        allow_debt: bool = False,
        history_limit: int = 500,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._event_bus = event_bus
        self.starting_funds = starting_funds
        self.max_funds = max_funds
        self.allow_debt = allow_debt
        self._clock = clock or (lambda: 0.0)
        self._funds = min(starting_funds, max_funds)
        self.history: deque[Transaction] = deque(maxlen=history_limit)
        self._record(TransactionType.GAME_START, "starting_funds", self._funds)

    # -- EconomyReader ----------------------------------------------------------

    def current_funds(self) -> int:
        return self._funds

    def grant(self, amount: int, reason: str) -> bool:
        """Credit or debit by reason; the prefix before ":" picks the transaction kind."""
        kind = _REASON_KINDS.get(reason.split(":", 1)[0], TransactionType.ADJUSTMENT)
        return self.process_transaction(kind, reason, amount)

    # -- Transactions -----------------------------------------------------------

    def process_transaction(self, kind: TransactionType, reason: str, amount: int) -> bool:
        """Apply ``amount`` (negative for debits).  Returns False if refused."""
        try:
            delta = self._apply(int(amount))
        except InsufficientFundsError as exc:
            logger.warning(f"Transaction refused ({kind.value}/{reason}): {exc}")
            self._publish("transaction_failed", {
                "kind": kind.value,
                "reason": reason,
                "amount": exc.amount,
                "available": exc.available,
            })
            return False

        self._record(kind, reason, delta)
        self._publish("money_changed", {
            "funds": self._funds,
            "delta": delta,
            "kind": kind.value,
            "reason": reason,
        })
        return True

    def can_afford(self, cost: int) -> bool:
        return self.allow_debt or self._funds >= cost

    def reset(self) -> None:
        self._funds = min(self.starting_funds, self.max_funds)
        self.history.clear()
        self._record(TransactionType.GAME_START, "starting_funds", self._funds)
        self._publish("money_changed", {
            "funds": self._funds,
            "delta": 0,
            "kind": TransactionType.GAME_START.value,
            "reason": "reset",
        })

    def to_dict(self) -> dict:
        return {
            "funds": self._funds,
            "max_funds": self.max_funds,
            "history": [t.to_dict() for t in list(self.history)[-10:]],
        }

    # -- Internal ---------------------------------------------------------------

    def _apply(self, amount: int) -> int:
        if amount < 0 and not self.allow_debt and self._funds + amount < 0:
            raise InsufficientFundsError(-amount, self._funds)
        before = self._funds
        after = self._funds + amount
        if not self.allow_debt:
            after = max(0, after)
        self._funds = min(self.max_funds, after)
        return self._funds - before

    def _record(self, kind: TransactionType, reason: str, delta: int) -> None:
        self.history.append(Transaction(kind, reason, delta, self._funds, self._clock()))

    def _publish(self, topic: str, data: dict) -> None:
        if self._event_bus is not None:
            self._event_bus.publish(topic, data)
