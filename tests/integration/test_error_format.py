"""Integration tests for standardized error responses."""

import uuid

import pytest

pytestmark = pytest.mark.integration


def _assert_standard_shape(data):
    assert "type" in data
    assert "errors" in data
    assert isinstance(data["errors"], list)
    assert data["errors"]
    for error in data["errors"]:
        assert "code" in error
        assert "detail" in error
        assert "attr" in error


class TestStandardizedErrors:
    def test_auth_error_has_standard_format(self, api_client):
        response = api_client.get("/api/v1/categories/")
        assert response.status_code == 401
        _assert_standard_shape(response.json())

    def test_permission_error_has_standard_format(self, customer_client):
        response = customer_client.post("/api/v1/categories/", {"name": "X1"}, format="json")
        assert response.status_code == 403
        _assert_standard_shape(response.json())

    def test_malformed_json_has_standard_format(self, admin_client):
        response = admin_client.post(
            "/api/v1/categories/", data="{", content_type="application/json"
        )
        assert response.status_code == 400
        _assert_standard_shape(response.json())

    def test_dto_validation_error_has_standard_format(self, admin_client):
        response = admin_client.post("/api/v1/categories/", {"name": "a"}, format="json")
        assert response.status_code == 400
        data = response.json()
        _assert_standard_shape(data)
        assert data["type"] == "validation_error"
        assert data["errors"][0]["attr"] == "name"

    def test_domain_not_found_has_standard_format(self, customer_client):
        response = customer_client.get(f"/api/v1/orders/{uuid.uuid4()}/")
        assert response.status_code == 404
        data = response.json()
        _assert_standard_shape(data)
        assert data["errors"][0]["code"] == "not_found"

    def test_domain_conflict_has_standard_format(self, admin_client, beverages, soda):
        response = admin_client.delete(f"/api/v1/categories/{beverages.id}/")
        assert response.status_code == 409
        _assert_standard_shape(response.json())
