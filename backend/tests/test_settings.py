"""Tests for lazily created user settings."""

import re
from unittest.mock import patch

import pytest

from app.config import get_settings
from app.exceptions import Conflict, NotFound
from app.services.settings_service import generate_serial_number, settings_service
from conftest import auth_headers, create_user

SERIAL_RE = re.compile(r"^[0-9A-Z]{8}$")


class TestSerialNumber:

    def test_format(self):
        for _ in range(50):
            assert SERIAL_RE.match(generate_serial_number())


class TestGetOrCreate:

    async def test_defaults(self, db, user):
        row = await settings_service.get_or_create(db, user.id)
        assert SERIAL_RE.match(row.serial_number)
        assert row.theme == "system"
        assert row.study_mode == "normal"
        assert row.focus_mode is False
        assert row.notifications is True
        assert row.study_preferences == {
            "preferred_study_time": 25 * 60 * 1000,
            "focus_duration": 25 * 60 * 1000,
            "break_duration": 5 * 60 * 1000,
        }
        assert row.ai_memory == []
        assert row.total_study_time == 0

    async def test_idempotent_with_stable_serial(self, db, user):
        first = await settings_service.get_or_create(db, user.id)
        second = await settings_service.get_or_create(db, user.id)
        assert first.user_id == second.user_id
        assert first.serial_number == second.serial_number

    async def test_serial_collision_is_retried(self, db, user, other_user):
        other_id = other_user.id
        taken = await settings_service.get_or_create(db, user.id)
        with patch(
            "app.services.settings_service.generate_serial_number",
            side_effect=[taken.serial_number, "FRESH001"],
        ):
            row = await settings_service.get_or_create(db, other_id)
        assert row.serial_number == "FRESH001"

    async def test_serial_exhaustion_is_conflict(self, db, user, other_user):
        other_id = other_user.id
        taken = await settings_service.get_or_create(db, user.id)
        attempts = get_settings().serial_number_max_attempts
        with patch(
            "app.services.settings_service.generate_serial_number",
            side_effect=[taken.serial_number] * attempts,
        ):
            with pytest.raises(Conflict):
                await settings_service.get_or_create(db, other_id)


class TestMutations:

    async def test_update_before_create_is_not_found(self, db, user):
        with pytest.raises(NotFound):
            await settings_service.update(db, user.id, {"theme": "dark"})

    async def test_update_merges_only_given_fields(self, db, user):
        await settings_service.get_or_create(db, user.id)
        row = await settings_service.update(db, user.id, {"theme": "dark", "focus_mode": True})
        assert row.theme == "dark"
        assert row.focus_mode is True
        assert row.study_mode == "normal"

    async def test_add_study_time_is_additive(self, db, user):
        await settings_service.get_or_create(db, user.id)
        await settings_service.add_study_time(db, user.id, 1500)
        row = await settings_service.add_study_time(db, user.id, 500)
        assert row.total_study_time == 2000

    async def test_clear_ai_memory(self, db, user):
        await settings_service.get_or_create(db, user.id)
        await settings_service.remember(db, user.id, [{"role": "user", "content": "hi", "timestamp": 1}])
        row = await settings_service.clear_ai_memory(db, user.id)
        assert row.ai_memory == []

    async def test_memory_is_trimmed_to_window(self, db, user):
        window = get_settings().ai_memory_window
        entries = [{"role": "user", "content": str(i), "timestamp": i} for i in range(window + 5)]
        await settings_service.remember(db, user.id, entries)
        row = await settings_service.find(db, user.id)
        assert len(row.ai_memory) == window
        assert row.ai_memory[-1]["content"] == str(window + 4)


class TestSettingsAPI:

    async def test_get_creates_and_is_stable(self, client, user):
        headers = auth_headers(user.id)
        first = (await client.get("/settings/", headers=headers)).json()
        second = (await client.get("/settings/", headers=headers)).json()
        assert first["serial_number"] == second["serial_number"]

    async def test_signed_out_get_is_null(self, client):
        assert (await client.get("/settings/")).json() is None

    async def test_patch_before_get_is_404(self, client, user):
        resp = await client.patch("/settings/", json={"theme": "dark"}, headers=auth_headers(user.id))
        assert resp.status_code == 404
        assert resp.json()["error"] == "NOT_FOUND"

    async def test_negative_study_time_rejected(self, client, user):
        headers = auth_headers(user.id)
        await client.get("/settings/", headers=headers)
        resp = await client.post("/settings/study-time", json={"duration": -5}, headers=headers)
        assert resp.status_code == 422

    async def test_invalid_theme_rejected(self, client, db):
        user = await create_user(db, "Theme Tester")
        headers = auth_headers(user.id)
        await client.get("/settings/", headers=headers)
        resp = await client.patch("/settings/", json={"theme": "neon"}, headers=headers)
        assert resp.status_code == 422

    async def test_null_field_leaves_value_unchanged(self, client, user):
        headers = auth_headers(user.id)
        await client.get("/settings/", headers=headers)
        resp = await client.patch("/settings/", json={"theme": None, "focus_mode": True}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["theme"] == "system"
        assert resp.json()["focus_mode"] is True
