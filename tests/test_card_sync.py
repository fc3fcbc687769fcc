"""Tests for card_sync_service and the Trello client.

Covers:
- Card name/description composition
- Happy path: one create call, one attach per reference image, write-back
- Missing config: no network calls, record untouched
- Missing record, Trello rejection (raw body kept)
- Best-effort attachments and write-back
"""

from datetime import date
from unittest.mock import patch

import pytest
import requests
from sqlalchemy.exc import OperationalError

from design_desk.errors import ConfigurationMissing, RecordNotFound, TrackerRejected
from design_desk.extensions import db
from design_desk.models.design_request import DesignRequest
from design_desk.services import card_sync_service
from design_desk.services.trello_client import TrelloClient

CARD = {"id": "card-abc", "url": "https://trello.com/c/abc/1-banner"}


def _route(fake_response, create=None, attach=None):
    """side_effect for requests.post that answers create vs attach calls."""
    create = create or fake_response(200, CARD)

    def _post(url, params=None, json=None, timeout=None):
        if url.endswith("/cards"):
            return create
        if attach is not None:
            return attach(url, json)
        return fake_response(200, {"id": "att-1"})

    return _post


# ─── Composition ──────────────────────────────────────────

class TestComposition:

    def test_card_name(self, make_request):
        r = make_request(title="Banner X", priority="urgent")
        assert card_sync_service.compose_card_name(r) == "[URGENT] Banner X"

    def test_description_has_required_fields_and_id(self, make_request):
        r = make_request(
            requester_name="Ana",
            requester_email="ana@example.com",
            department="Sales",
            request_type="print",
            description="A flyer",
            objective="Promote",
            target_audience="Locals",
            deadline=date(2025, 1, 10),
            priority="high",
        )
        desc = card_sync_service.compose_card_description(r)

        assert "**Requester:** Ana (ana@example.com)" in desc
        assert "**Department:** Sales" in desc
        assert "**Type:** print" in desc
        assert "A flyer" in desc
        assert "Promote" in desc
        assert "Locals" in desc
        assert "**Deadline:** 2025-01-10" in desc
        assert "**Priority:** high" in desc
        assert desc.rstrip().endswith(f"Request ID: {r.id}")

    def test_description_omits_absent_optional_fields(self, make_request):
        r = make_request(dimensions="1080x1080", additional_notes=None)
        desc = card_sync_service.compose_card_description(r)

        assert "**Dimensions:** 1080x1080" in desc
        assert "Additional Notes" not in desc
        assert "Colors" not in desc
        assert "References" not in desc
        assert "N/A" not in desc


# ─── Sync ─────────────────────────────────────────────────

class TestSyncRequestCard:

    @patch("design_desk.services.trello_client.requests")
    def test_happy_path_creates_card_and_attaches_images(
        self, mock_requests, app, trello_config, make_request, fake_response
    ):
        mock_requests.post.side_effect = _route(fake_response)
        r = make_request(reference_images=[
            "https://cdn.test/a.png",
            "https://cdn.test/b.png",
        ])

        result = card_sync_service.sync_request_card(r.id)

        calls = mock_requests.post.call_args_list
        create_calls = [c for c in calls if c.args[0].endswith("/cards")]
        attach_calls = [c for c in calls if c.args[0].endswith("/attachments")]
        assert len(create_calls) == 1
        assert len(attach_calls) == 2
        assert {c.kwargs["json"]["url"] for c in attach_calls} == {
            "https://cdn.test/a.png",
            "https://cdn.test/b.png",
        }
        assert result == {
            "card_id": "card-abc",
            "card_url": CARD["url"],
            "attachments": 2,
            "linked": True,
        }

        db.session.expire_all()
        stored = db.session.get(DesignRequest, r.id)
        assert stored.external_card_id == "card-abc"
        assert stored.external_card_url == CARD["url"]

    @patch("design_desk.services.trello_client.requests")
    def test_create_payload(self, mock_requests, app, trello_config, make_request, fake_response):
        mock_requests.post.side_effect = _route(fake_response)
        r = make_request(title="Banner X", priority="urgent", deadline=date(2025, 1, 10))

        card_sync_service.sync_request_card(r.id)

        call = mock_requests.post.call_args_list[0]
        assert call.args[0] == "https://api.trello.test/1/cards"
        assert call.kwargs["params"] == {"key": "trello-key", "token": "trello-token"}
        payload = call.kwargs["json"]
        assert payload["idList"] == "list-123"
        assert payload["name"] == "[URGENT] Banner X"
        assert payload["due"] == "2025-01-10"
        assert payload["pos"] == "top"

    @patch("design_desk.services.trello_client.requests")
    def test_missing_config_makes_no_calls(self, mock_requests, app, make_request):
        r = make_request()

        with pytest.raises(ConfigurationMissing):
            card_sync_service.sync_request_card(r.id)

        mock_requests.post.assert_not_called()
        db.session.expire_all()
        stored = db.session.get(DesignRequest, r.id)
        assert stored.external_card_id is None
        assert stored.external_card_url is None

    @patch("design_desk.services.trello_client.requests")
    def test_partial_config_counts_as_missing(self, mock_requests, app, trello_config, make_request):
        app.config["TRELLO_LIST_ID"] = ""
        r = make_request()

        with pytest.raises(ConfigurationMissing):
            card_sync_service.sync_request_card(r.id)
        mock_requests.post.assert_not_called()

    @patch("design_desk.services.trello_client.requests")
    def test_unknown_request(self, mock_requests, app, trello_config):
        with pytest.raises(RecordNotFound):
            card_sync_service.sync_request_card("does-not-exist")
        mock_requests.post.assert_not_called()

    @patch("design_desk.services.trello_client.requests")
    def test_tracker_rejection_keeps_raw_body(
        self, mock_requests, app, trello_config, make_request, fake_response
    ):
        mock_requests.post.side_effect = _route(
            fake_response, create=fake_response(401, text="invalid token")
        )
        r = make_request(reference_images=["https://cdn.test/a.png"])

        with pytest.raises(TrackerRejected) as exc_info:
            card_sync_service.sync_request_card(r.id)

        assert exc_info.value.tracker_status == 401
        assert exc_info.value.body == "invalid token"
        assert mock_requests.post.call_count == 1  # no attach attempts
        db.session.expire_all()
        assert db.session.get(DesignRequest, r.id).external_card_id is None

    @patch("design_desk.services.trello_client.requests")
    def test_attachment_failure_does_not_stop_others(
        self, mock_requests, app, trello_config, make_request, fake_response
    ):
        def attach(url, body):
            if body["url"].endswith("bad.png"):
                raise requests.ConnectionError("reset")
            if body["url"].endswith("rejected.png"):
                return fake_response(400, text="bad url")
            return fake_response(200)

        mock_requests.post.side_effect = _route(fake_response, attach=attach)
        r = make_request(reference_images=[
            "https://cdn.test/bad.png",
            "https://cdn.test/rejected.png",
            "https://cdn.test/good.png",
        ])

        result = card_sync_service.sync_request_card(r.id)

        assert mock_requests.post.call_count == 4
        assert result["attachments"] == 1
        db.session.expire_all()
        assert db.session.get(DesignRequest, r.id).external_card_id == "card-abc"

    @patch("design_desk.services.trello_client.requests")
    def test_write_back_failure_is_logged_not_raised(
        self, mock_requests, app, trello_config, make_request, fake_response, caplog
    ):
        mock_requests.post.side_effect = _route(fake_response)
        r = make_request()
        request_id = r.id

        with patch.object(
            db.session, "commit",
            side_effect=OperationalError("UPDATE", {}, Exception("read-only")),
        ):
            result = card_sync_service.sync_request_card(request_id)

        assert result["card_id"] == "card-abc"
        assert result["linked"] is False
        assert "could not be updated" in caplog.text
        db.session.expire_all()
        assert db.session.get(DesignRequest, request_id).external_card_id is None

    @patch("design_desk.services.trello_client.requests")
    def test_rerun_creates_second_card(
        self, mock_requests, app, trello_config, make_request, fake_response, caplog
    ):
        mock_requests.post.side_effect = _route(fake_response)
        r = make_request(external_card_id="card-old", external_card_url="https://trello.com/c/old")

        card_sync_service.sync_request_card(r.id)

        assert "already linked" in caplog.text
        db.session.expire_all()
        assert db.session.get(DesignRequest, r.id).external_card_id == "card-abc"


# ─── Client ───────────────────────────────────────────────

class TestTrelloClient:

    @patch("design_desk.services.trello_client.requests")
    def test_falls_back_to_short_url(self, mock_requests, fake_response):
        mock_requests.post.return_value = fake_response(
            200, {"id": "c1", "shortUrl": "https://trello.com/c/short"}
        )
        client = TrelloClient("k", "t", base_url="https://api.trello.test/1/")

        card = client.create_card("list", "name", "desc", "2025-01-10")

        assert card == {"id": "c1", "url": "https://trello.com/c/short"}
        assert mock_requests.post.call_args.args[0] == "https://api.trello.test/1/cards"

    @patch("design_desk.services.trello_client.requests")
    def test_attach_ignores_non_json_body(self, mock_requests, fake_response):
        resp = fake_response(200, text="OK")
        resp.json.side_effect = ValueError("not json")
        mock_requests.post.return_value = resp
        client = TrelloClient("k", "t", base_url="https://api.trello.test/1")

        client.attach_url_to_card("c1", "https://cdn.test/a.png")

        resp.raise_for_status.assert_called_once()
        assert mock_requests.post.call_args.args[0] == "https://api.trello.test/1/cards/c1/attachments"

    @patch("design_desk.services.trello_client.requests")
    def test_non_json_attach_response_counts_as_attached(
        self, mock_requests, app, trello_config, make_request, fake_response
    ):
        def attach(url, body):
            resp = fake_response(200, text="OK")
            resp.json.side_effect = ValueError("not json")
            return resp

        mock_requests.post.side_effect = _route(fake_response, attach=attach)
        r = make_request(reference_images=["https://cdn.test/a.png"])

        result = card_sync_service.sync_request_card(r.id)

        assert result["attachments"] == 1
