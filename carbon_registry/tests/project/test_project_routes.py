from fastapi.testclient import TestClient

from carbon_registry.project.schemas import ClimateProjectCreate, ClimateProjectRead


class TestProjectRoutes:
    def test_create_project(self, api_client: TestClient, buyer, auth_factory):
        project = ClimateProjectCreate(
            name="Kelp Forest",
            description="Offshore kelp cultivation",
            location="Tasmania",
            target_co2_reduction=250,
            funding_goal=1_000,
        )

        response = api_client.post(
            "project/create", json=project.model_dump(), headers=auth_factory(buyer.identity)
        )
        assert response.status_code == 201, response.text
        assert response.json()["owner"] == buyer.identity
        assert response.json()["milestones"] == []

        response = api_client.post(
            "project/create", json=project.model_dump(), headers=auth_factory("stranger")
        )
        assert response.status_code == 401

        response = api_client.get("project/")
        assert [p["name"] for p in response.json()] == ["Kelp Forest"]

    def test_fund_project(
        self,
        api_client: TestClient,
        buyer,
        fake_project: ClimateProjectRead,
        auth_factory,
    ):
        headers = auth_factory(buyer.identity)

        response = api_client.post(
            f"project/{fake_project.id}/fund", json={"amount": 100}, headers=headers
        )
        assert response.status_code == 200, response.text
        assert response.json()["current_funding"] == 100

        response = api_client.post(
            f"project/{fake_project.id}/fund", json={"amount": 1}, headers=headers
        )
        assert response.status_code == 409
        assert response.json()["error_type"] == "inactive_or_fully_funded"

        response = api_client.get(f"project/{fake_project.id}/contributors")
        assert response.json() == [buyer.identity]

        response = api_client.get(
            f"project/{fake_project.id}/contributions/{buyer.identity}"
        )
        assert response.json() == {
            "project_id": fake_project.id,
            "contributor": buyer.identity,
            "amount": 100,
        }

        assert api_client.post("project/5/fund", json={"amount": 1}, headers=headers).status_code == 404

    def test_owner_operations(
        self,
        api_client: TestClient,
        fake_project: ClimateProjectRead,
        auth_factory,
        owner_headers,
    ):
        project_owner_headers = auth_factory(fake_project.owner)

        response = api_client.post(
            f"project/{fake_project.id}/verify", headers=project_owner_headers
        )
        assert response.status_code == 401

        response = api_client.post(f"project/{fake_project.id}/verify", headers=owner_headers)
        assert response.json()["is_verified"] is True

        response = api_client.post(
            f"project/{fake_project.id}/progress",
            json={"co2_reduced": 600},
            headers=owner_headers,
        )
        assert response.status_code == 400

        response = api_client.post(
            f"project/{fake_project.id}/progress",
            json={"co2_reduced": 120},
            headers=owner_headers,
        )
        assert response.json()["current_co2_reduction"] == 120

        response = api_client.post(
            f"project/{fake_project.id}/milestone",
            json={"label": "Seedlings planted"},
            headers=project_owner_headers,
        )
        assert response.json()["milestones"] == ["Seedlings planted"]

        response = api_client.put(
            f"project/{fake_project.id}/active",
            json={"active": False},
            headers=owner_headers,
        )
        assert response.json()["is_active"] is False

        response = api_client.get(f"project/{fake_project.id}")
        assert response.json()["is_verified"] is True
        assert response.json()["is_active"] is False


class TestCoreRoutes:
    def test_statistics_and_events(self, api_client: TestClient, fake_project):
        response = api_client.get("statistics")
        assert response.json() == {
            "total_credits": 0,
            "total_projects": 1,
            "total_participants": 1,
            "ledger_balance": 0,
        }

        response = api_client.get("events")
        assert [e["name"] for e in response.json()] == [
            "ParticipantRegistered",
            "ProjectCreated",
        ]

        first_id = response.json()[0]["id"]
        response = api_client.get("events", params={"after_id": first_id})
        assert [e["name"] for e in response.json()] == ["ProjectCreated"]

    def test_change_log_level(self, api_client: TestClient):
        response = api_client.post("change_log_level", json={"level": "DEBUG"})

        assert response.status_code == 200
        assert response.json()["logger_status"]["carbon_registry"] == "DEBUG"

        api_client.post("change_log_level", json={"level": "INFO"})
