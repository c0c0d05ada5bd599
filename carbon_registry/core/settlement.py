"""
Value settlement for ledger transitions.

Credits and project funding move real value between identities. The ledger
never holds value across transitions: a payment is collected into ledger
custody and paid straight back out within the same transition. Each leg is a
fallible side effect, and a transition only commits once all of its legs
have completed.
"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict

from carbon_registry.core.errors import InvalidInput, PaymentFailed
from carbon_registry.logging_config import logger


class SettlementGateway(ABC):
    """Moves value between external identities and the ledger's custody."""

    @abstractmethod
    def collect(self, payer: str, amount: int) -> None:
        """Take `amount` from `payer` into ledger custody."""

    @abstractmethod
    def pay(self, payee: str, amount: int) -> None:
        """Release `amount` from ledger custody to `payee`."""

    @abstractmethod
    def ledger_balance(self) -> int:
        """Value currently held by the ledger."""

    def reverse(self, kind: str, identity: str, amount: int) -> None:
        """Undo a completed leg of an aborted transition."""
        if kind == "collect":
            self.pay(identity, amount)
        else:
            self.collect(identity, amount)


class InMemorySettlementGateway(SettlementGateway):
    def __init__(self, balances: dict[str, int] | None = None):
        self._balances: defaultdict[str, int] = defaultdict(int, balances or {})
        self._custody = 0
        self._lock = threading.Lock()
        self.rejecting_payees: set[str] = set()

    def deposit(self, identity: str, amount: int) -> None:
        if amount <= 0:
            raise InvalidInput("Deposit amount must be greater than 0")
        with self._lock:
            self._balances[identity] += amount

    def balance_of(self, identity: str) -> int:
        return self._balances[identity]

    def collect(self, payer: str, amount: int) -> None:
        with self._lock:
            if self._balances[payer] < amount:
                raise PaymentFailed(
                    f"{payer} holds {self._balances[payer]}, cannot pay {amount}",
                    payer=payer,
                    amount=amount,
                )
            self._balances[payer] -= amount
            self._custody += amount

    def pay(self, payee: str, amount: int) -> None:
        with self._lock:
            if payee in self.rejecting_payees:
                raise PaymentFailed(
                    f"{payee} rejected a payment of {amount}", payee=payee, amount=amount
                )
            if self._custody < amount:
                raise PaymentFailed(
                    f"Ledger holds {self._custody}, cannot pay {amount}",
                    payee=payee,
                    amount=amount,
                )
            self._custody -= amount
            self._balances[payee] += amount

    def ledger_balance(self) -> int:
        return self._custody

    def reverse(self, kind: str, identity: str, amount: int) -> None:
        # Reversals restore balances directly; a payee that rejects new payments
        # still gets its own value back
        with self._lock:
            if kind == "collect":
                self._custody -= amount
                self._balances[identity] += amount
            else:
                self._balances[identity] -= amount
                self._custody += amount


class SettlementBatch:
    """The settlement legs of a single transition.

    Completed legs are remembered so that an aborted transition can hand the
    value back: a collection is reversed by paying the payer, a payment by
    collecting from the payee.
    """

    def __init__(self, gateway: SettlementGateway):
        self.gateway = gateway
        self.legs: list[tuple[str, str, int]] = []

    def collect(self, payer: str, amount: int) -> None:
        if amount == 0:
            return
        self.gateway.collect(payer, amount)
        self.legs.append(("collect", payer, amount))

    def pay(self, payee: str, amount: int) -> None:
        if amount == 0:
            return
        self.gateway.pay(payee, amount)
        self.legs.append(("pay", payee, amount))

    def compensate(self) -> list[tuple[str, str, int]]:
        """Reverse every completed leg, newest first.

        A leg that cannot be reversed is logged and skipped so the rest are
        still handed back, and the failure that aborted the transition stays
        the one raised to the caller.

        Returns:
            list: The legs whose reversal failed.
        """
        unreversed = []
        while self.legs:
            kind, identity, amount = self.legs.pop()
            logger.warning(f"Reversing settlement leg: {kind} {amount} ({identity})")
            try:
                self.gateway.reverse(kind, identity, amount)
            except Exception:
                logger.exception(
                    f"Failed to reverse settlement leg: {kind} {amount} ({identity})"
                )
                unreversed.append((kind, identity, amount))
        return unreversed
