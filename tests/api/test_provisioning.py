"""Provisioning and principal read API."""

import pytest
from httpx import ASGITransport, AsyncClient

EC2_BODY = {
    "principals": [
        {
            "principal_name": "ec2User",
            "group_name": "EC2UserGroup",
            "contact_email": "ec2_user@example.com",
        }
    ],
    "groups": [
        {
            "group_name": "EC2UserGroup",
            "rules": [{"actions": ["ec2:Describe*", "ec2:Get*"], "resources": ["*"]}],
        }
    ],
}


async def test_apply_creates_principal(client: AsyncClient) -> None:
    response = await client.post("/api/v1/provisioning/apply", json=EC2_BODY)
    assert response.status_code == 200
    data = response.json()
    assert data["ok"] is True
    assert data["secret_id"] == "initial-iam-password"
    assert data["secret_generated"] is True
    assert data["entries"] == [
        {
            "principal_name": "ec2User",
            "group_name": "EC2UserGroup",
            "status": "created",
            "error_code": None,
            "message": None,
        }
    ]
    assert "value" not in data


async def test_apply_twice_is_unchanged(client: AsyncClient) -> None:
    first = (await client.post("/api/v1/provisioning/apply", json=EC2_BODY)).json()
    second = (await client.post("/api/v1/provisioning/apply", json=EC2_BODY)).json()
    assert second["secret_generated"] is False
    assert second["secret_version"] == first["secret_version"]
    assert second["entries"][0]["status"] == "unchanged"


async def test_apply_invalid_email_is_400(client: AsyncClient) -> None:
    body = {
        "principals": [
            {"principal_name": "ec2User", "group_name": "G", "contact_email": "nope"}
        ]
    }
    response = await client.post("/api/v1/provisioning/apply", json=body)
    assert response.status_code == 400
    assert response.json()["error"] == "VALIDATION_ERROR"


async def test_apply_malformed_body_is_422(client: AsyncClient) -> None:
    response = await client.post("/api/v1/provisioning/apply", json={"principals": "x"})
    assert response.status_code == 422


async def test_unsatisfiable_policy_is_422(monkeypatch: pytest.MonkeyPatch) -> None:
    from iamsync.core.config import get_settings
    from iamsync.main import create_app

    monkeypatch.setenv("SECRET_EXCLUDED_CHARS", "0123456789")
    get_settings.cache_clear()
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/api/v1/provisioning/apply", json=EC2_BODY)
    assert response.status_code == 422
    assert response.json()["error"] == "POLICY_VIOLATION"
    assert response.json()["details"]["secret_id"] == "initial-iam-password"


async def test_apply_default_and_read_principals(client: AsyncClient) -> None:
    response = await client.post("/api/v1/provisioning/apply-default")
    assert response.status_code == 200
    assert [e["principal_name"] for e in response.json()["entries"]] == ["ec2User", "s3User"]

    listing = (await client.get("/api/v1/principals")).json()
    assert listing["total"] == 2
    assert [p["name"] for p in listing["items"]] == ["ec2User", "s3User"]

    ec2 = (await client.get("/api/v1/principals/ec2User")).json()
    assert ec2["group_names"] == ["EC2UserGroup"]
    assert ec2["contact_email"] == "ec2_user@example.com"
    assert ec2["password_reset_required"] is True
    assert ec2["login"]["secret_id"] == "initial-iam-password"
    assert "password_hash" not in ec2["login"]


async def test_get_missing_principal_is_404(client: AsyncClient) -> None:
    response = await client.get("/api/v1/principals/ghost")
    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "NOT_FOUND"
    assert body["details"] == {"resource_type": "principal", "resource_id": "ghost"}
