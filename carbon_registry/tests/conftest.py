from typing import Any, Callable, Generator

import pytest
from dotenv import load_dotenv
from starlette.testclient import TestClient

from carbon_registry.authentication.services import create_access_token
from carbon_registry.core.database.db import create_ledger_engine
from carbon_registry.core.settlement import InMemorySettlementGateway
from carbon_registry.credit.schemas import CarbonCreditRead
from carbon_registry.ledger import RegistryLedger, get_ledger
from carbon_registry.main import app
from carbon_registry.participant.schemas import ParticipantRead
from carbon_registry.project.schemas import ClimateProjectRead

load_dotenv()

REGISTRY_OWNER = "registry-admin"
STARTING_BALANCE = 10_000


@pytest.fixture()
def settlement() -> InMemorySettlementGateway:
    return InMemorySettlementGateway()


@pytest.fixture()
def ledger(settlement: InMemorySettlementGateway) -> RegistryLedger:
    """A fresh in-memory ledger for every test."""
    return RegistryLedger(
        owner=REGISTRY_OWNER,
        engine=create_ledger_engine("sqlite://"),
        settlement=settlement,
    )


@pytest.fixture()
def participant_factory(
    ledger: RegistryLedger, settlement: InMemorySettlementGateway
) -> Callable[..., ParticipantRead]:
    """Factory registering participants with a funded settlement balance."""

    def _create_participant(
        identity: str,
        organization_type: str = "company",
        balance: int = STARTING_BALANCE,
    ) -> ParticipantRead:
        participant = ledger.register_participant(
            identity, f"fake_participant_{identity}", organization_type, f"doc-{identity}"
        )
        if balance:
            settlement.deposit(identity, balance)
        return participant

    return _create_participant


@pytest.fixture()
def issuer(ledger: RegistryLedger, participant_factory: Any) -> ParticipantRead:
    participant = participant_factory("issuer-a")
    ledger.set_issuer_authorization(REGISTRY_OWNER, "issuer-a", True)
    return participant


@pytest.fixture()
def buyer(participant_factory: Any) -> ParticipantRead:
    return participant_factory("buyer-b", organization_type="individual")


@pytest.fixture()
def fake_credit(ledger: RegistryLedger, issuer: ParticipantRead) -> CarbonCreditRead:
    """Credit #1: 10 tonnes at 5 per tonne, held by its issuer."""
    return ledger.issue_credit(
        issuer.identity, "Mangrove Restoration", 10, 5, "0xabc123", "VM0033"
    )


@pytest.fixture()
def fake_project(
    ledger: RegistryLedger, participant_factory: Any
) -> ClimateProjectRead:
    owner = participant_factory("project-owner-c", organization_type="ngo")
    return ledger.create_project(
        owner.identity, "Reforestation", "Native species planting", "Kenya", 500, 100
    )


@pytest.fixture()
def api_client(ledger: RegistryLedger) -> Generator[TestClient, None, None]:
    """API Client for testing routes"""

    def get_ledger_override():
        return ledger

    app.dependency_overrides[get_ledger] = get_ledger_override

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_factory() -> Callable[[str], dict[str, str]]:
    """Factory returning bearer headers for an identity."""

    def _create_headers(identity: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(identity)}"}

    return _create_headers


@pytest.fixture()
def owner_headers(auth_factory) -> dict[str, str]:
    return auth_factory(REGISTRY_OWNER)
