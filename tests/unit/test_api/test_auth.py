"""Tests for API key authentication and role enforcement."""

from collections.abc import AsyncGenerator

import pytest
from fastapi import Depends, FastAPI
from httpx import ASGITransport, AsyncClient

from tutor_gateway.auth.context import OPERATOR_ROLES, CallerContext, CallerRole
from tutor_gateway.auth.keys import key_prefix, resolve_role
from tutor_gateway.auth.roles import require_role
from tutor_gateway.config import Settings, get_settings


def _settings() -> Settings:
    return Settings(
        admin_api_keys=["adm-key"],  # type: ignore[list-item]
        instructor_api_keys=["ins-key", "shared-key"],  # type: ignore[list-item]
        student_api_keys=["stu-key", "shared-key"],  # type: ignore[list-item]
        _env_file=None,
    )


class TestResolveRole:
    @pytest.mark.parametrize(
        ("key", "role"),
        [
            ("adm-key", CallerRole.ADMIN),
            ("ins-key", CallerRole.INSTRUCTOR),
            ("stu-key", CallerRole.STUDENT),
        ],
    )
    def test_known_keys(self, key: str, role: CallerRole) -> None:
        assert resolve_role(key, _settings()) is role

    def test_stronger_role_wins(self) -> None:
        assert resolve_role("shared-key", _settings()) is CallerRole.INSTRUCTOR

    def test_unknown_and_empty(self) -> None:
        assert resolve_role("nope", _settings()) is None
        assert resolve_role("", _settings()) is None

    def test_key_prefix(self) -> None:
        assert key_prefix("adm-key-123456") == "adm-ke"


@pytest.fixture()
async def role_client() -> AsyncGenerator[AsyncClient]:
    """Minimal app with one operator-only route and real key auth."""
    test_app = FastAPI()
    operator_dep = Depends(require_role(*OPERATOR_ROLES))

    @test_app.get("/operator-only")
    async def operator_only(caller: CallerContext = operator_dep) -> dict[str, str]:
        return {"role": str(caller.role)}

    test_app.dependency_overrides[get_settings] = _settings
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        yield client


class TestRequireRole:
    async def test_admin_key_allowed(self, role_client: AsyncClient) -> None:
        response = await role_client.get(
            "/operator-only", headers={"X-API-Key": "adm-key"}
        )
        assert response.status_code == 200
        assert response.json() == {"role": "admin"}

    async def test_instructor_key_allowed(self, role_client: AsyncClient) -> None:
        response = await role_client.get(
            "/operator-only", headers={"X-API-Key": "ins-key"}
        )
        assert response.json() == {"role": "instructor"}

    async def test_student_key_forbidden(self, role_client: AsyncClient) -> None:
        response = await role_client.get(
            "/operator-only", headers={"X-API-Key": "stu-key"}
        )
        assert response.status_code == 403
        assert response.json()["detail"] == "Requires role: admin or instructor"

    async def test_unknown_key_unauthorized(self, role_client: AsyncClient) -> None:
        response = await role_client.get(
            "/operator-only", headers={"X-API-Key": "forged"}
        )
        assert response.status_code == 401

    async def test_missing_key_rejected(self, role_client: AsyncClient) -> None:
        response = await role_client.get("/operator-only")
        assert response.status_code in (401, 403)
