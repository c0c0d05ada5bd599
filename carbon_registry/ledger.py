"""
The Registry Ledger

A single shared store of participants, carbon credits and climate projects.
Every mutating operation runs as one transition: it takes the registry lock,
checks its preconditions, stages its writes and settlement legs, and then
either commits all of them together or leaves no trace at all. Notifications
reach observers only after the commit.
"""

import threading
from collections import deque
from contextlib import contextmanager
from typing import Generator, Iterable

from sqlalchemy.engine import Engine
from sqlmodel import Session

from carbon_registry.core.context import FundingGoalHook, LedgerContext
from carbon_registry.core.database import events
from carbon_registry.core.database.db import create_ledger_engine
from carbon_registry.core.database.events import EventObserver, LedgerEventRead
from carbon_registry.core.models.registry import PlatformStatistics, RegistryCounters
from carbon_registry.core.settlement import (
    InMemorySettlementGateway,
    SettlementBatch,
    SettlementGateway,
)
from carbon_registry.credit import services as credit_services
from carbon_registry.credit.schemas import (
    CarbonCreditIssue,
    CarbonCreditPurchaseRead,
    CarbonCreditRead,
)
from carbon_registry.logging_config import logger
from carbon_registry.participant import services as participant_services
from carbon_registry.participant.schemas import ParticipantCreate, ParticipantRead
from carbon_registry.project import services as project_services
from carbon_registry.project.schemas import ClimateProjectCreate, ClimateProjectRead
from carbon_registry.settings import settings
from carbon_registry.utils import dataframe_to_csv, records_to_dataframe


class RegistryLedger:
    def __init__(
        self,
        owner: str | None = None,
        engine: Engine | None = None,
        settlement: SettlementGateway | None = None,
        funding_goal_reached: FundingGoalHook | None = None,
        observers: Iterable[EventObserver] = (),
    ):
        """
        Args:
            owner (str): The registry administrator. Fixed for the lifetime of the ledger.
            engine (Engine): The store backing the ledger; a fresh in-memory store if omitted.
            settlement (SettlementGateway): Where payments and contributions settle.
            funding_goal_reached (FundingGoalHook): Called inside the funding transition
                that brings a project to its goal. Defaults to a hook that only logs.
            observers (Iterable[EventObserver]): Receive each notification after commit.
        """
        self._owner = owner or settings.REGISTRY_OWNER
        self.engine = engine or create_ledger_engine()
        self.settlement = settlement or InMemorySettlementGateway()
        self.funding_goal_reached = (
            funding_goal_reached or project_services.funding_goal_reached_noop
        )
        self.observers: list[EventObserver] = list(observers)
        self._lock = threading.RLock()

        # Committed notifications awaiting delivery, in commit order
        self._pending: deque[LedgerEventRead] = deque()
        self._dispatch_lock = threading.Lock()
        self._dispatching = False

        with Session(self.engine) as session:
            RegistryCounters.load(session)
            session.commit()

        logger.info(f"Registry ledger ready, owner: {self._owner}")

    @property
    def owner(self) -> str:
        return self._owner

    def subscribe(self, observer: EventObserver) -> None:
        self.observers.append(observer)

    @contextmanager
    def transaction(self, caller: str) -> Generator[LedgerContext, None, None]:
        """Run one transition on behalf of `caller`, all or nothing."""
        with self._lock:
            with Session(self.engine, expire_on_commit=False) as session:
                ctx = LedgerContext(
                    session=session,
                    caller=caller,
                    registry_owner=self._owner,
                    settlement=SettlementBatch(self.settlement),
                    funding_goal_reached=self.funding_goal_reached,
                )
                try:
                    yield ctx
                    session.commit()
                except Exception:
                    session.rollback()
                    ctx.settlement.compensate()
                    raise
            committed = [events.to_read(event) for event in ctx.staged_events]
            # Queued under the registry lock so queue order is commit order
            with self._dispatch_lock:
                self._pending.extend(committed)

        self._dispatch()

    @contextmanager
    def read_session(self) -> Generator[Session, None, None]:
        with self._lock:
            with Session(self.engine, expire_on_commit=False) as session:
                yield session

    def _dispatch(self) -> None:
        """Deliver queued notifications in commit order.

        Only one thread drains the queue at a time; events committed while a
        delivery is in progress are delivered by that thread after the ones
        before them. Observers run outside the registry lock and may call
        back into the ledger.
        """
        with self._dispatch_lock:
            if self._dispatching:
                return
            self._dispatching = True

        try:
            while True:
                with self._dispatch_lock:
                    if not self._pending:
                        self._dispatching = False
                        return
                    event = self._pending.popleft()
                self._notify(event)
        except BaseException:
            with self._dispatch_lock:
                self._dispatching = False
            raise

    def _notify(self, event: LedgerEventRead) -> None:
        for observer in self.observers:
            try:
                observer(event)
            except Exception:
                # The transition is already committed; a failing observer
                # must not turn it into an error for the caller
                logger.exception(f"Observer failed on event {event.id} ({event.name})")

    ### Identity ###

    def register_participant(
        self,
        caller: str,
        name: str,
        organization_type: str,
        verification_document: str = "",
    ) -> ParticipantRead:
        participant_create = ParticipantCreate(
            name=name,
            organization_type=organization_type,
            verification_document=verification_document,
        )
        with self.transaction(caller) as ctx:
            participant = participant_services.register_participant(ctx, participant_create)
            return ParticipantRead.model_validate(participant)

    def verify_participant(self, caller: str, identity: str) -> ParticipantRead:
        with self.transaction(caller) as ctx:
            participant = participant_services.verify_participant(ctx, identity)
            return ParticipantRead.model_validate(participant)

    def set_issuer_authorization(self, caller: str, identity: str, allowed: bool) -> bool:
        with self.transaction(caller) as ctx:
            return participant_services.set_issuer_authorization(ctx, identity, allowed)

    ### Credits ###

    def issue_credit(
        self,
        caller: str,
        project_name: str,
        amount: int,
        price_per_tonne: int,
        verification_hash: str,
        methodology: str = "",
    ) -> CarbonCreditRead:
        credit_issue = CarbonCreditIssue(
            project_name=project_name,
            amount=amount,
            price_per_tonne=price_per_tonne,
            verification_hash=verification_hash,
            methodology=methodology,
        )
        with self.transaction(caller) as ctx:
            credit = credit_services.issue_credit(ctx, credit_issue)
            return CarbonCreditRead.model_validate(credit)

    def purchase_credit(
        self, caller: str, credit_id: int, payment_amount: int
    ) -> CarbonCreditPurchaseRead:
        with self.transaction(caller) as ctx:
            return credit_services.purchase_credit(ctx, credit_id, payment_amount)

    def retire_credit(self, caller: str, credit_id: int) -> CarbonCreditRead:
        with self.transaction(caller) as ctx:
            credit = credit_services.retire_credit(ctx, credit_id)
            return CarbonCreditRead.model_validate(credit)

    ### Projects ###

    def create_project(
        self,
        caller: str,
        name: str,
        description: str,
        location: str,
        target_co2_reduction: int,
        funding_goal: int,
    ) -> ClimateProjectRead:
        project_create = ClimateProjectCreate(
            name=name,
            description=description,
            location=location,
            target_co2_reduction=target_co2_reduction,
            funding_goal=funding_goal,
        )
        with self.transaction(caller) as ctx:
            project = project_services.create_project(ctx, project_create)
            return ClimateProjectRead.model_validate(project)

    def fund_project(self, caller: str, project_id: int, amount: int) -> ClimateProjectRead:
        with self.transaction(caller) as ctx:
            project = project_services.fund_project(ctx, project_id, amount)
            return ClimateProjectRead.model_validate(project)

    def verify_project(self, caller: str, project_id: int) -> ClimateProjectRead:
        with self.transaction(caller) as ctx:
            project = project_services.verify_project(ctx, project_id)
            return ClimateProjectRead.model_validate(project)

    def update_project_progress(
        self, caller: str, project_id: int, co2_reduced: int
    ) -> ClimateProjectRead:
        with self.transaction(caller) as ctx:
            project = project_services.update_project_progress(ctx, project_id, co2_reduced)
            return ClimateProjectRead.model_validate(project)

    def add_project_milestone(
        self, caller: str, project_id: int, label: str
    ) -> ClimateProjectRead:
        with self.transaction(caller) as ctx:
            project = project_services.add_project_milestone(ctx, project_id, label)
            return ClimateProjectRead.model_validate(project)

    def set_project_active(
        self, caller: str, project_id: int, active: bool
    ) -> ClimateProjectRead:
        with self.transaction(caller) as ctx:
            project = project_services.set_project_active(ctx, project_id, active)
            return ClimateProjectRead.model_validate(project)

    ### Queries ###

    def get_credit(self, credit_id: int) -> CarbonCreditRead:
        with self.read_session() as session:
            return CarbonCreditRead.model_validate(
                credit_services.get_credit(credit_id, session)
            )

    def list_credits(
        self, owner: str | None = None, include_retired: bool = True
    ) -> list[CarbonCreditRead]:
        with self.read_session() as session:
            return [
                CarbonCreditRead.model_validate(credit)
                for credit in credit_services.list_credits(session, owner, include_retired)
            ]

    def export_credits_csv(self) -> str:
        credits = self.list_credits()
        df = records_to_dataframe(credits, columns=list(CarbonCreditRead.model_fields))
        return dataframe_to_csv(df)

    def get_participant(self, identity: str) -> ParticipantRead:
        with self.read_session() as session:
            return ParticipantRead.model_validate(
                participant_services.get_participant(identity, session)
            )

    def get_owned_credit_ids(self, identity: str) -> list[int]:
        with self.read_session() as session:
            return credit_services.get_owned_credit_ids(identity, session)

    def is_authorized_issuer(self, identity: str) -> bool:
        with self.read_session() as session:
            return participant_services.check_issuer_authorization(identity, session)

    def get_project(self, project_id: int) -> ClimateProjectRead:
        with self.read_session() as session:
            return ClimateProjectRead.model_validate(
                project_services.get_project(project_id, session)
            )

    def list_projects(self) -> list[ClimateProjectRead]:
        with self.read_session() as session:
            return [
                ClimateProjectRead.model_validate(project)
                for project in project_services.list_projects(session)
            ]

    def get_project_contributors(self, project_id: int) -> list[str]:
        with self.read_session() as session:
            return project_services.get_contributors(project_id, session)

    def get_contribution(self, project_id: int, contributor: str) -> int:
        with self.read_session() as session:
            return project_services.get_contribution(project_id, contributor, session)

    def get_statistics(self) -> PlatformStatistics:
        with self.read_session() as session:
            counters = RegistryCounters.load(session)
            return PlatformStatistics(
                total_credits=counters.total_credits,
                total_projects=counters.total_projects,
                total_participants=counters.total_participants,
                ledger_balance=self.settlement.ledger_balance(),
            )

    def list_events(self, after_id: int = 0, limit: int | None = None) -> list[LedgerEventRead]:
        with self.read_session() as session:
            return [events.to_read(e) for e in events.list_events(session, after_id, limit)]


_ledger: RegistryLedger | None = None
_ledger_lock = threading.Lock()


def get_ledger() -> RegistryLedger:
    """The process-wide ledger served by the API, built from settings on first use."""
    global _ledger
    with _ledger_lock:
        if _ledger is None:
            publisher = events.get_esdb_publisher()
            _ledger = RegistryLedger(
                owner=settings.REGISTRY_OWNER,
                engine=create_ledger_engine(settings.DATABASE_URL),
                observers=[publisher] if publisher else (),
            )
        return _ledger
