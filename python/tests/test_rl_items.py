"""Tests for content item routes and the audio lock transitions.

Tests cover:
- GET /rl_items/{id}/listening polling state and ownership masking
- DELETE /rl_items/{id}: hard delete vs delete_requested flag
- reserve / link / release compare-and-set semantics
"""

from datetime import UTC, datetime
from uuid import uuid4

import pytest

from readlisten.db.models import AudioRef, LItem
from readlisten.errors import NotFoundError
from readlisten.services import rl_items as rl_items_service
from tests.helpers import auth_headers, create_l_item, create_rl_item, read_rl_item


class TestListeningState:
    @pytest.mark.parametrize(
        ("audio_ref", "state"),
        [(AudioRef.empty(), "empty"), (AudioRef.locked(), "in_progress")],
    )
    def test_reports_state(self, client, db_session, test_user_id, audio_ref, state):
        rl_item_id = create_rl_item(db_session, test_user_id, audio_ref=audio_ref)

        response = client.get(
            f"/rl_items/{rl_item_id}/listening", headers=auth_headers(test_user_id)
        )

        assert response.status_code == 200
        assert response.json() == {"rl_item_id": rl_item_id, "state": state, "l_item_id": None}

    def test_ready_reports_uid(self, client, db_session, test_user_id):
        uid = uuid4()
        rl_item_id = create_rl_item(db_session, test_user_id, audio_ref=AudioRef.ready(uid))

        response = client.get(
            f"/rl_items/{rl_item_id}/listening", headers=auth_headers(test_user_id)
        )

        assert response.json() == {
            "rl_item_id": rl_item_id,
            "state": "ready",
            "l_item_id": str(uid),
        }

    def test_other_users_item_is_not_found(self, client, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, uuid4())

        response = client.get(
            f"/rl_items/{rl_item_id}/listening", headers=auth_headers(test_user_id)
        )

        assert response.status_code == 404
        assert response.json() == {"error": "rl_item not found"}

    def test_requires_bearer(self, client, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id)

        response = client.get(
            f"/rl_items/{rl_item_id}/listening", headers={"Authorization": "Token abc"}
        )

        assert response.status_code == 401
        assert response.json() == {"error": "Invalid authorization header format"}


class TestDeleteRlItem:
    def test_item_without_audio_is_removed(self, client, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id)

        response = client.delete(f"/rl_items/{rl_item_id}", headers=auth_headers(test_user_id))

        assert response.status_code == 200
        assert response.json() == {"deleted": "hard"}
        assert read_rl_item(db_session, rl_item_id) is None

    def test_item_with_audio_is_flagged(self, client, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id)
        uid = create_l_item(db_session, rl_item_id)
        item = read_rl_item(db_session, rl_item_id)
        item.l_item_id = uid
        db_session.commit()

        response = client.delete(f"/rl_items/{rl_item_id}", headers=auth_headers(test_user_id))

        assert response.json() == {"deleted": "requested"}
        item = read_rl_item(db_session, rl_item_id)
        assert item.delete_requested is True
        assert item.audio_ref == AudioRef.ready(uid)
        assert db_session.get(LItem, uid) is not None

    def test_item_with_job_in_flight_is_flagged(self, client, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id, audio_ref=AudioRef.locked())

        response = client.delete(f"/rl_items/{rl_item_id}", headers=auth_headers(test_user_id))

        assert response.json() == {"deleted": "requested"}
        item = read_rl_item(db_session, rl_item_id)
        assert item.delete_requested is True
        assert item.audio_ref.is_locked

    def test_other_users_item_is_untouched(self, client, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, uuid4())

        response = client.delete(f"/rl_items/{rl_item_id}", headers=auth_headers(test_user_id))

        assert response.status_code == 404
        assert read_rl_item(db_session, rl_item_id) is not None


class TestAudioLockTransitions:
    def test_reserve_only_from_empty(self, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id)

        assert rl_items_service.reserve_audio_lock(db_session, rl_item_id) is True
        db_session.commit()
        assert rl_items_service.reserve_audio_lock(db_session, rl_item_id) is False

        item = read_rl_item(db_session, rl_item_id)
        assert item.audio_ref.is_locked
        assert item.audio_requested_at is not None

    def test_reserve_records_request_time(self, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id)
        now = datetime(2026, 1, 2, 3, 4, 5, tzinfo=UTC)

        rl_items_service.reserve_audio_lock(db_session, rl_item_id, now=now)
        db_session.commit()

        stored = read_rl_item(db_session, rl_item_id).audio_requested_at
        assert stored.replace(tzinfo=UTC) == now

    def test_link_requires_lock(self, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id)
        uid = uuid4()

        assert rl_items_service.link_audio(db_session, rl_item_id, uid) is False

        rl_items_service.reserve_audio_lock(db_session, rl_item_id)
        assert rl_items_service.link_audio(db_session, rl_item_id, uid) is True
        db_session.commit()

        item = read_rl_item(db_session, rl_item_id)
        assert item.audio_ref == AudioRef.ready(uid)
        assert item.audio_requested_at is None

    def test_release_leaves_ready_items_alone(self, db_session, test_user_id):
        uid = uuid4()
        rl_item_id = create_rl_item(db_session, test_user_id, audio_ref=AudioRef.ready(uid))

        assert rl_items_service.release_audio_lock(db_session, rl_item_id) is False
        db_session.commit()

        assert read_rl_item(db_session, rl_item_id).audio_ref == AudioRef.ready(uid)

    def test_release_clears_lock(self, db_session, test_user_id):
        rl_item_id = create_rl_item(db_session, test_user_id, audio_ref=AudioRef.locked())

        assert rl_items_service.release_audio_lock(db_session, rl_item_id) is True
        db_session.commit()

        assert read_rl_item(db_session, rl_item_id).audio_ref.is_empty

    def test_get_rl_item_missing_raises(self, db_session):
        with pytest.raises(NotFoundError) as exc_info:
            rl_items_service.get_rl_item(db_session, 12345)
        assert exc_info.value.status_code == 404
