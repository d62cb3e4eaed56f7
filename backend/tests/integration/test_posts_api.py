"""
Integration tests for draft post API routes.

Tests the /posts endpoints:
- Draft creation, editing and listing
- Scheduling a draft
- Deleting drafts
"""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import status


def _future(days: int = 3) -> str:
    return (datetime.now(UTC) + timedelta(days=days)).date().isoformat()


async def _create_draft(client, headers, **overrides) -> dict:
    payload = {"content": "Draft idea", "platforms": ["twitter"], "tags": ["ideas"]}
    payload.update(overrides)
    response = await client.post("/api/v1/posts", json=payload, headers=headers)
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()


class TestDrafts:
    """Tests for /posts draft lifecycle."""

    @pytest.mark.asyncio
    async def test_create_draft(self, async_client, auth_headers):
        data = await _create_draft(async_client, auth_headers)

        assert data["status"] == "draft"
        assert data["scheduledAt"] is None
        assert data["scheduledDate"] is None
        assert data["tags"] == ["ideas"]

    @pytest.mark.asyncio
    async def test_create_draft_requires_platform(self, async_client, auth_headers):
        response = await async_client.post(
            "/api/v1/posts", json={"content": "No target"}, headers=auth_headers
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_edit_draft(self, async_client, auth_headers):
        draft = await _create_draft(async_client, auth_headers)

        response = await async_client.put(
            f"/api/v1/posts/{draft['id']}",
            json={"content": "Polished idea", "platforms": ["twitter", "linkedin"]},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["content"] == "Polished idea"
        assert data["platforms"] == ["twitter", "linkedin"]
        assert data["status"] == "draft"

    @pytest.mark.asyncio
    async def test_schedule_draft(self, async_client, auth_headers):
        draft = await _create_draft(async_client, auth_headers)

        response = await async_client.post(
            f"/api/v1/posts/{draft['id']}/schedule",
            json={"scheduledDate": _future(), "scheduledTime": "10:15", "timezone": "Europe/London"},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "scheduled"
        assert data["scheduledDate"] == _future()
        assert data["scheduledTime"] == "10:15"
        assert data["timezone"] == "Europe/London"

        # Scheduled items are no longer editable as drafts
        response = await async_client.put(
            f"/api/v1/posts/{draft['id']}", json={"content": "x"}, headers=auth_headers
        )
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_schedule_draft_in_past_returns_400(self, async_client, auth_headers):
        draft = await _create_draft(async_client, auth_headers)

        response = await async_client.post(
            f"/api/v1/posts/{draft['id']}/schedule",
            json={"scheduledDate": "2020-05-01", "scheduledTime": "10:00"},
            headers=auth_headers,
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_list_and_filter_by_status(self, async_client, auth_headers):
        first = await _create_draft(async_client, auth_headers)
        second = await _create_draft(async_client, auth_headers, content="Another")
        await async_client.post(
            f"/api/v1/posts/{second['id']}/schedule",
            json={"scheduledDate": _future(), "scheduledTime": "09:00"},
            headers=auth_headers,
        )

        response = await async_client.get("/api/v1/posts", headers=auth_headers)
        assert response.json()["total"] == 2

        response = await async_client.get(
            "/api/v1/posts", params={"status": "draft"}, headers=auth_headers
        )
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == first["id"]

    @pytest.mark.asyncio
    async def test_get_and_delete_draft(self, async_client, auth_headers, other_auth_headers):
        draft = await _create_draft(async_client, auth_headers)

        response = await async_client.get(f"/api/v1/posts/{draft['id']}", headers=other_auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND

        response = await async_client.delete(f"/api/v1/posts/{draft['id']}", headers=auth_headers)
        assert response.status_code == status.HTTP_200_OK

        response = await async_client.get(f"/api/v1/posts/{draft['id']}", headers=auth_headers)
        assert response.status_code == status.HTTP_404_NOT_FOUND
