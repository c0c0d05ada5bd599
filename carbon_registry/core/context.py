from dataclasses import dataclass, field
from typing import Any, Callable

from sqlmodel import Session

from carbon_registry.core.database import events
from carbon_registry.core.models.base import LedgerEventName
from carbon_registry.core.models.registry import LedgerEvent, RegistryCounters
from carbon_registry.core.settlement import SettlementBatch

FundingGoalHook = Callable[["LedgerContext", Any], None]


@dataclass
class LedgerContext:
    """Everything one transition may touch: the acting identity, the open
    session on the shared store and the settlement legs it has completed.

    Nothing staged here is visible outside the transition until it commits.
    """

    session: Session
    caller: str
    registry_owner: str
    settlement: SettlementBatch
    funding_goal_reached: FundingGoalHook
    staged_events: list[LedgerEvent] = field(default_factory=list)

    @property
    def counters(self) -> RegistryCounters:
        return RegistryCounters.load(self.session)

    def emit(
        self, event_name: LedgerEventName, subject: Any, **payload: Any
    ) -> LedgerEvent:
        event = events.create_event(event_name, subject, payload, self.session)
        self.staged_events.append(event)
        return event
