import logging
import threading
import time
from unittest.mock import MagicMock

import pytest
from esdbclient import StreamState

from carbon_registry.core.database.events import EventStoreDBPublisher, LedgerEventRead
from carbon_registry.core.errors import AlreadyRetired, Unauthorized
from carbon_registry.core.settlement import InMemorySettlementGateway
from carbon_registry.credit.schemas import CarbonCreditRead
from carbon_registry.ledger import RegistryLedger


class TestRegistryLedger:
    def test_statistics(
        self,
        ledger: RegistryLedger,
        buyer,
        fake_credit: CarbonCreditRead,
        fake_project,
    ):
        ledger.purchase_credit(buyer.identity, fake_credit.id, 55)
        ledger.fund_project(buyer.identity, fake_project.id, 20)

        stats = ledger.get_statistics()
        assert stats.total_credits == 1
        assert stats.total_projects == 1
        # issuer, buyer and project owner
        assert stats.total_participants == 3
        assert stats.ledger_balance == 0

    def test_event_feed(self, ledger: RegistryLedger, buyer, fake_credit: CarbonCreditRead):
        ledger.purchase_credit(buyer.identity, fake_credit.id, 50)
        ledger.retire_credit(buyer.identity, fake_credit.id)

        names = [e.name for e in ledger.list_events()]
        assert names == [
            "ParticipantRegistered",
            "ParticipantRegistered",
            "IssuerAuthorizationChanged",
            "CreditIssued",
            "CreditTransferred",
            "CreditRetired",
        ]

        all_events = ledger.list_events()
        ids = [e.id for e in all_events]
        assert ids == sorted(ids)

        page = ledger.list_events(after_id=all_events[2].id, limit=2)
        assert [e.name for e in page] == ["CreditIssued", "CreditTransferred"]

    def test_event_payloads_carry_names(self, ledger: RegistryLedger):
        ledger.register_participant("alice", "Alice", "individual")
        ledger.create_project("alice", "Seagrass Meadow", "", "Portugal", 40, 80)

        registered, created = ledger.list_events()
        assert registered.name == "ParticipantRegistered"
        assert registered.payload["name"] == "Alice"
        assert registered.payload["organization_type"] == "individual"
        assert created.name == "ProjectCreated"
        assert created.subject == "1"
        assert created.payload["name"] == "Seagrass Meadow"
        assert created.payload["owner"] == "alice"

    def test_observers_receive_events_in_commit_order(self, ledger: RegistryLedger):
        delivered: list[int] = []
        first_delivery_started = threading.Event()

        def slow_observer(event: LedgerEventRead):
            if event.subject == "alice":
                first_delivery_started.set()
                time.sleep(0.3)
            delivered.append(event.id)

        ledger.subscribe(slow_observer)

        first = threading.Thread(
            target=ledger.register_participant, args=("alice", "Alice", "individual")
        )
        first.start()
        assert first_delivery_started.wait(timeout=5)

        # Commits while alice's event is still being delivered
        ledger.register_participant("bob", "Bob", "individual")
        first.join()

        committed = [e.id for e in ledger.list_events()]
        assert delivered == committed
        assert delivered == sorted(delivered)

    def test_observer_may_call_back_into_ledger(self, ledger: RegistryLedger):
        seen: list[tuple[str, int]] = []

        def counting_observer(event: LedgerEventRead):
            seen.append((event.name, ledger.get_statistics().total_participants))
            if event.subject == "alice":
                ledger.register_participant("bob", "Bob", "individual")

        ledger.subscribe(counting_observer)
        ledger.register_participant("alice", "Alice", "individual")

        # bob commits from inside the observer and is delivered after alice
        assert seen == [("ParticipantRegistered", 1), ("ParticipantRegistered", 2)]

    def test_observers_notified_after_commit(self, ledger: RegistryLedger):
        received: list[LedgerEventRead] = []
        ledger.subscribe(received.append)

        ledger.register_participant("alice", "Alice", "individual")
        with pytest.raises(Unauthorized):
            ledger.verify_participant("alice", "alice")

        assert [e.name for e in received] == ["ParticipantRegistered"]
        assert received[0].subject == "alice"
        assert received[0] == ledger.list_events()[0]

    def test_failing_observer_does_not_fail_transition(
        self, ledger: RegistryLedger, caplog
    ):
        received: list[LedgerEventRead] = []

        def broken_observer(event: LedgerEventRead):
            raise ConnectionError("downstream unavailable")

        ledger.subscribe(broken_observer)
        ledger.subscribe(received.append)

        with caplog.at_level(logging.ERROR):
            participant = ledger.register_participant("alice", "Alice", "individual")

        assert participant.identity == "alice"
        assert ledger.get_participant("alice").name == "Alice"
        assert len(received) == 1
        assert "Observer failed" in caplog.text

    def test_esdb_publisher_appends_committed_events(self, ledger: RegistryLedger):
        esdb_client = MagicMock()
        ledger.subscribe(EventStoreDBPublisher(esdb_client, stream_name="test-stream"))

        ledger.register_participant("alice", "Alice", "individual")

        esdb_client.append_event.assert_called_once()
        kwargs = esdb_client.append_event.call_args.kwargs
        assert kwargs["stream_name"] == "test-stream"
        assert kwargs["current_version"] == StreamState.ANY
        assert kwargs["event"].type == "ParticipantRegistered"
        assert b'"subject":"alice"' in kwargs["event"].data

    def test_concurrent_purchase_and_retire(
        self,
        ledger: RegistryLedger,
        settlement: InMemorySettlementGateway,
        issuer,
        participant_factory,
        fake_credit: CarbonCreditRead,
    ):
        """A purchase racing the seller's retirement: exactly one of them wins."""
        participant_factory("racing-buyer")
        barrier = threading.Barrier(2)
        outcomes: dict[str, object] = {}

        def purchase():
            barrier.wait()
            try:
                outcomes["purchase"] = ledger.purchase_credit(
                    "racing-buyer", fake_credit.id, 50
                )
            except (AlreadyRetired, Unauthorized) as e:
                outcomes["purchase"] = e

        def retire():
            barrier.wait()
            try:
                outcomes["retire"] = ledger.retire_credit(issuer.identity, fake_credit.id)
            except (AlreadyRetired, Unauthorized) as e:
                outcomes["retire"] = e

        threads = [threading.Thread(target=purchase), threading.Thread(target=retire)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        failures = [o for o in outcomes.values() if isinstance(o, Exception)]
        assert len(outcomes) == 2
        assert len(failures) == 1

        credit = ledger.get_credit(fake_credit.id)
        if isinstance(outcomes["purchase"], Exception):
            # Retired by the issuer, never sold
            assert credit.is_retired is True
            assert credit.current_owner == issuer.identity
            assert isinstance(outcomes["purchase"], AlreadyRetired)
            assert settlement.balance_of("racing-buyer") == 10_000
        else:
            # Sold first, so the issuer no longer owns it
            assert credit.is_retired is False
            assert credit.current_owner == "racing-buyer"
            assert isinstance(outcomes["retire"], Unauthorized)
            assert settlement.balance_of("racing-buyer") == 10_000 - 50

        assert settlement.ledger_balance() == 0

    def test_concurrent_purchases_single_winner(
        self,
        ledger: RegistryLedger,
        participant_factory,
        fake_credit: CarbonCreditRead,
    ):
        buyers = [f"buyer-{i}" for i in range(5)]
        for identity in buyers:
            participant_factory(identity)
        results: list[object] = []
        results_lock = threading.Lock()

        def purchase(identity: str):
            try:
                result = ledger.purchase_credit(identity, fake_credit.id, 50)
            except Exception as e:
                result = e
            with results_lock:
                results.append(result)

        threads = [threading.Thread(target=purchase, args=(b,)) for b in buyers]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Later buyers purchase from the previous buyer, so every call succeeds
        # and the credit ends with exactly one holder
        assert all(not isinstance(r, Exception) for r in results)
        holders = [b for b in buyers if ledger.get_owned_credit_ids(b) == [fake_credit.id]]
        assert len(holders) == 1
        assert ledger.get_credit(fake_credit.id).current_owner == holders[0]
        total_owned = sum(ledger.get_participant(b).carbon_credits_owned for b in buyers)
        assert total_owned == 10

    def test_export_credits_csv(
        self, ledger: RegistryLedger, issuer, fake_credit: CarbonCreditRead
    ):
        ledger.issue_credit(issuer.identity, "Peatland", 3, 7, "0xdef")

        csv_text = ledger.export_credits_csv()
        lines = csv_text.strip().splitlines()

        assert lines[0].split(",")[:5] == [
            "project_name",
            "amount",
            "price_per_tonne",
            "verification_hash",
            "methodology",
        ]
        assert len(lines) == 3
        assert "Mangrove Restoration" in lines[1]
        assert "Peatland" in lines[2]

    def test_default_owner_from_settings(self):
        ledger = RegistryLedger()
        assert ledger.owner == "registry-admin"
        assert ledger.get_statistics().total_participants == 0
