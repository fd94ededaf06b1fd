import pytest
from datetime import datetime
from unittest.mock import AsyncMock

from conftest import USER_ID, fake_upsert

UG_CREATE = {
    "qualifications": [{
        "standard": "UG",
        "examination_results": {
            "ug": {"branch": "CSE", "aggregate": {"cgpa": 8.5, "class": "First", "percentage": 85}}
        },
    }]
}

PG_CREATE = {
    "qualifications": [{
        "standard": "PG",
        "branch": "XX",
        "examination_results": {
            "pg": {"aggregate": {"cgpa": 8, "class": "First", "percentage": 80}}
        },
    }],
    "research_interest": {"branch": "CSE"},
}


class TestAcademicRouter:
    """Test cases for the academic record endpoints"""

    def test_create_ug_record(self, mock_coll, client, auth_headers):
        """POST creates a new record with the UG qualification intact"""
        mock_coll.find_one = AsyncMock(return_value=None)
        mock_coll.find_one_and_update = AsyncMock(side_effect=fake_upsert)

        response = client.post("/api/academic/", json=UG_CREATE, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Academic details created successfully"
        ug = data["academic"]["qualifications"][0]["examination_results"]["ug"]
        assert ug == {"branch": "CSE", "aggregate": {"cgpa": 8.5, "class": "First", "percentage": 85}}

        persisted = mock_coll.find_one_and_update.call_args.args[1]["$set"]["qualifications"][0]
        assert persisted["examination_results"]["ug"]["aggregate"]["percentage"] == 85

    def test_create_pg_record_falls_back_to_research_branch(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(return_value=None)
        mock_coll.find_one_and_update = AsyncMock(side_effect=fake_upsert)

        response = client.post("/api/academic/", json=PG_CREATE, headers=auth_headers)

        assert response.status_code == 201
        persisted = mock_coll.find_one_and_update.call_args.args[1]["$set"]["qualifications"][0]
        assert persisted["examination_results"]["pg"]["branch"] == "CSE"

    def test_post_on_existing_record_updates(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(return_value={"user_id": USER_ID, **UG_CREATE})
        mock_coll.find_one_and_update = AsyncMock(side_effect=fake_upsert)

        response = client.post(
            "/api/academic/", json={"research_interest": {"branch": "ME"}}, headers=auth_headers
        )

        assert response.status_code == 200
        assert response.json()["message"] == "Academic details updated successfully"

    def test_invalid_pg_branch_returns_400(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(return_value=None)
        mock_coll.find_one_and_update = AsyncMock(side_effect=fake_upsert)
        payload = {**PG_CREATE, "research_interest": {"branch": "Civil"}}

        response = client.post("/api/academic/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert "valid branch" in data["message"]
        assert data["error"]["error_code"] == "INVALID_PG_BRANCH"
        assert data["error"]["details"]["qualification_index"] == 0
        mock_coll.find_one_and_update.assert_not_called()

    def test_missing_ug_fields_returns_400(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(return_value=None)
        payload = {"qualifications": [{"standard": "UG", "examination_results": {"ug": {"branch": "CSE"}}}]}

        response = client.post("/api/academic/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["details"]["missing_fields"] == [
            "aggregate.cgpa", "aggregate.class", "aggregate.percentage"
        ]

    def test_unknown_standard_is_rejected_by_schema(self, mock_coll, client, auth_headers):
        payload = {"qualifications": [{"standard": "PhD"}]}

        response = client.post("/api/academic/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        mock_coll.find_one_and_update.assert_not_called()

    def test_missing_standard_uses_error_envelope(self, mock_coll, client, auth_headers):
        payload = {"qualifications": [{"branch": "CSE"}]}

        response = client.post("/api/academic/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        data = response.json()
        assert data["success"] is False
        assert data["message"] == "Request data validation failed"
        assert data["request_id"] == response.headers["X-Request-ID"]
        assert data["validation_errors"][0]["loc"] == ["body", "qualifications", 0, "standard"]
        mock_coll.find_one_and_update.assert_not_called()

    def test_non_string_aggregate_class_is_rejected(self, mock_coll, client, auth_headers):
        payload = {"qualifications": [{
            "standard": "UG",
            "examination_results": {"ug": {"branch": "CSE", "aggregate": {"cgpa": 8, "class": 1, "percentage": 80}}},
        }]}

        response = client.put("/api/academic/", json=payload, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["success"] is False
        mock_coll.find_one_and_update.assert_not_called()

    def test_missing_identity_returns_401(self, client):
        response = client.get("/api/academic/")

        assert response.status_code == 401
        assert response.json()["error"]["error_code"] == "AUTHENTICATION_ERROR"

    def test_get_record_is_idempotent(self, mock_coll, client, auth_headers):
        stored = {
            "user_id": USER_ID,
            **UG_CREATE,
            "experience": [],
            "publications": [],
            "research_interest": {"branch": "CSE"},
            "created_at": datetime(2024, 5, 1, 12, 0),
            "updated_at": datetime(2024, 5, 1, 12, 0),
        }
        mock_coll.find_one = AsyncMock(side_effect=lambda *args, **kwargs: dict(stored))

        first = client.get("/api/academic/", headers=auth_headers)
        second = client.get("/api/academic/", headers=auth_headers)

        assert first.status_code == 200
        assert first.content == second.content
        assert "_id" not in first.json()

    def test_get_missing_record_returns_404(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(return_value=None)

        response = client.get("/api/academic/", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Academic details not found"

    def test_put_missing_record_returns_404(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(return_value=None)

        response = client.put("/api/academic/", json={"publications": []}, headers=auth_headers)

        assert response.status_code == 404

    def test_put_updates_existing_record(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(return_value={"user_id": USER_ID, **UG_CREATE})
        mock_coll.find_one_and_update = AsyncMock(side_effect=fake_upsert)

        response = client.put(
            "/api/academic/",
            json={"publications": [{"title": "On graphs", "year": 2023}]},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["academic"]["publications"][0]["title"] == "On graphs"

    def test_details_create_duplicate_returns_400(self, mock_coll, client, auth_headers):
        from pymongo.errors import DuplicateKeyError
        mock_coll.insert_one = AsyncMock(side_effect=DuplicateKeyError("E11000 duplicate key"))

        response = client.post("/api/academic/details", json=UG_CREATE, headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["error_code"] == "DUPLICATE_RECORD"

    def test_details_create_returns_201(self, mock_coll, client, auth_headers):
        mock_coll.insert_one = AsyncMock()

        response = client.post("/api/academic/details", json=UG_CREATE, headers=auth_headers)

        assert response.status_code == 201
        assert response.json()["academic"]["user_id"] == USER_ID

    def test_unexpected_error_returns_500_with_detail_outside_production(self, mock_coll, client, auth_headers):
        mock_coll.find_one = AsyncMock(side_effect=RuntimeError("boom"))

        response = client.get("/api/academic/", headers=auth_headers)

        assert response.status_code == 500
        data = response.json()
        assert data["error"] == "Internal server error"
        assert "boom" in data["detail"]
        assert "X-Request-ID" in response.headers
