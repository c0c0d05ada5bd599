from fastapi.testclient import TestClient

from carbon_registry.ledger import RegistryLedger
from carbon_registry.participant.schemas import ParticipantCreate


class TestParticipantRoutes:
    def test_register_participant(self, api_client: TestClient, auth_factory):
        participant = ParticipantCreate(
            name="Alice", organization_type="individual", verification_document="kyc-1"
        )

        response = api_client.post(
            "participant/register",
            json=participant.model_dump(),
            headers=auth_factory("alice"),
        )

        assert response.status_code == 201, response.text
        assert response.json()["identity"] == "alice"
        assert response.json()["carbon_credits_owned"] == 0

        response = api_client.post(
            "participant/register",
            json=participant.model_dump(),
            headers=auth_factory("alice"),
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "already_registered"

    def test_register_requires_token(self, api_client: TestClient):
        participant = ParticipantCreate(name="Alice", organization_type="individual")

        response = api_client.post(
            "participant/register", json=participant.model_dump()
        )
        assert response.status_code == 401

        response = api_client.post(
            "participant/register",
            json=participant.model_dump(),
            headers={"Authorization": "Bearer not-a-jwt"},
        )
        assert response.status_code == 401
        assert response.json()["error_message"] == "Invalid or expired JWT access-token"

    def test_register_invalid_body(self, api_client: TestClient, auth_factory):
        response = api_client.post(
            "participant/register",
            json={"name": "Alice"},
            headers=auth_factory("alice"),
        )

        assert response.status_code == 422
        body = response.json()
        assert body["error_type"] == "validation_error"
        assert body["details"]["path"] == "/participant/register"
        errors = body["details"]["errors"]
        assert [e["location"] for e in errors] == ["body -> organization_type"]
        assert errors[0]["type"] == "missing"

    def test_read_participant(
        self, api_client: TestClient, buyer, fake_credit, ledger: RegistryLedger
    ):
        ledger.purchase_credit(buyer.identity, fake_credit.id, 50)

        response = api_client.get(f"participant/{buyer.identity}")
        assert response.status_code == 200
        assert response.json()["carbon_credits_owned"] == 10

        response = api_client.get(f"participant/{buyer.identity}/credits")
        assert response.json() == [fake_credit.id]

        response = api_client.get("participant/ghost")
        assert response.status_code == 404
        assert response.json()["error_type"] == "not_found"

        # Unknown identities hold nothing
        assert api_client.get("participant/ghost/credits").json() == []

    def test_verify_participant(
        self, api_client: TestClient, buyer, auth_factory, owner_headers
    ):
        response = api_client.post(
            f"participant/{buyer.identity}/verify", headers=auth_factory(buyer.identity)
        )
        assert response.status_code == 401
        assert response.json()["error_type"] == "unauthorized"

        response = api_client.post(
            f"participant/{buyer.identity}/verify", headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["is_verified"] is True

    def test_issuer_authorization(self, api_client: TestClient, owner_headers):
        response = api_client.get("participant/issuer-x/issuer")
        assert response.json() == {"identity": "issuer-x", "is_authorized_issuer": False}

        response = api_client.put(
            "participant/issuer-x/issuer", json={"allowed": True}, headers=owner_headers
        )
        assert response.status_code == 200
        assert response.json()["is_authorized_issuer"] is True

        response = api_client.get("participant/issuer-x/issuer")
        assert response.json()["is_authorized_issuer"] is True
