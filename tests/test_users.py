"""
Tests for the user administration endpoints and role guards.

These verify:
  - Only SUPER_ADMIN can change roles; the new role reaches fresh tokens
  - ADMIN and SUPER_ADMIN can deactivate users; USER cannot (403)
  - Deactivation immediately locks the user out of /auth/me and /auth/refresh
  - Unknown user ids return 404
"""

import uuid

from crm.models.user import UserRole

from conftest import register_and_login, set_user_fields


async def _member(client) -> dict:
    """Register and log in a plain USER without touching client headers."""
    return await register_and_login(client, "member@example.com", "MemberPass1!")


class TestUpdateRole:
    """Tests for PATCH /users/{user_id}/role."""

    async def test_super_admin_changes_role(self, super_admin_client):
        member = await _member(super_admin_client)
        response = await super_admin_client.patch(
            f"/users/{member['user']['id']}/role", json={"role": "MANAGER"}
        )
        assert response.status_code == 200
        assert response.json()["role"] == "MANAGER"

        login = await super_admin_client.post(
            "/auth/login",
            json={"email": "member@example.com", "password": "MemberPass1!"},
        )
        assert login.json()["user"]["role"] == "MANAGER"

    async def test_admin_cannot_change_role(self, client, session_factory):
        admin = await register_and_login(client, "admin@example.com", "AdminPass1!")
        await set_user_fields(session_factory, admin["user"]["id"], role=UserRole.ADMIN)
        member = await _member(client)

        response = await client.patch(
            f"/users/{member['user']['id']}/role",
            json={"role": "ADMIN"},
            headers={"Authorization": f"Bearer {admin['accessToken']}"},
        )
        assert response.status_code == 403

    async def test_invalid_role(self, super_admin_client):
        member = await _member(super_admin_client)
        response = await super_admin_client.patch(
            f"/users/{member['user']['id']}/role", json={"role": "OWNER"}
        )
        assert response.status_code == 422

    async def test_unknown_user(self, super_admin_client):
        response = await super_admin_client.patch(
            f"/users/{uuid.uuid4()}/role", json={"role": "MANAGER"}
        )
        assert response.status_code == 404


class TestUpdateStatus:
    """Tests for PATCH /users/{user_id}/status."""

    async def test_deactivation_revokes_access(self, super_admin_client):
        member = await _member(super_admin_client)
        member_headers = {"Authorization": f"Bearer {member['accessToken']}"}

        response = await super_admin_client.patch(
            f"/users/{member['user']['id']}/status", json={"isActive": False}
        )
        assert response.status_code == 200
        assert response.json()["isActive"] is False

        me = await super_admin_client.get("/auth/me", headers=member_headers)
        assert me.status_code == 401

        refresh = await super_admin_client.post(
            "/auth/refresh", json={"refreshToken": member["refreshToken"]}
        )
        assert refresh.status_code == 401

    async def test_reactivation_allows_login(self, super_admin_client):
        member = await _member(super_admin_client)
        user_url = f"/users/{member['user']['id']}/status"
        await super_admin_client.patch(user_url, json={"isActive": False})
        await super_admin_client.patch(user_url, json={"isActive": True})

        login = await super_admin_client.post(
            "/auth/login",
            json={"email": "member@example.com", "password": "MemberPass1!"},
        )
        assert login.status_code == 200

    async def test_user_role_is_forbidden(self, authenticated_client):
        response = await authenticated_client.patch(
            f"/users/{uuid.uuid4()}/status", json={"isActive": False}
        )
        assert response.status_code == 403

    async def test_requires_token(self, client):
        response = await client.patch(
            f"/users/{uuid.uuid4()}/status", json={"isActive": False}
        )
        assert response.status_code == 401
