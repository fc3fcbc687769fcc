"""Card sync service — mirrors a DesignRequest onto a Trello card.

Flow for sync_request_card(request_id):
1. Check Trello config (no network call or DB write if missing).
2. Load the request.
3. Create the card at the top of TRELLO_LIST_ID, due = deadline.
4. Attach each reference image URL (best-effort, one failure doesn't stop the rest).
5. Write the card id/url back onto the request (best-effort, logged on failure).

Nothing here retries. Running it twice for the same request creates two cards.
"""

import logging

import requests
from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from design_desk.errors import ConfigurationMissing, RecordNotFound
from design_desk.extensions import db
from design_desk.models.design_request import DesignRequest
from design_desk.services.trello_client import TrelloClient

logger = logging.getLogger(__name__)

# (field, label) pairs rendered only when the request has a value
OPTIONAL_DESCRIPTION_FIELDS = [
    ("dimensions", "Dimensions"),
    ("color_preferences", "Colors"),
    ("reference_links", "References"),
    ("additional_notes", "Additional Notes"),
]


def _get_trello_config():
    """Return Trello settings, or None if any credential is missing."""
    cfg = current_app.config
    api_key = cfg.get("TRELLO_API_KEY")
    token = cfg.get("TRELLO_TOKEN")
    list_id = cfg.get("TRELLO_LIST_ID")

    if not (api_key and token and list_id):
        return None
    return {
        "api_key": api_key,
        "token": token,
        "list_id": list_id,
        "base_url": cfg.get("TRELLO_API_BASE", "https://api.trello.com/1"),
        "timeout": cfg.get("TRELLO_TIMEOUT", 15),
    }


def compose_card_name(design_request):
    return f"[{design_request.priority.upper()}] {design_request.title}"


def compose_card_description(design_request):
    """Markdown card body. Absent optional fields are left out entirely."""
    deadline = design_request.deadline.isoformat() if design_request.deadline else ""

    lines = [
        f"**Requester:** {design_request.requester_name} ({design_request.requester_email})",
        f"**Department:** {design_request.department}",
        f"**Type:** {design_request.request_type}",
        "",
        "**Description:**",
        design_request.description,
        "",
        "**Objective:**",
        design_request.objective,
        "",
        "**Target Audience:**",
        design_request.target_audience,
        "",
        f"**Deadline:** {deadline}",
        f"**Priority:** {design_request.priority}",
    ]

    extras = [
        f"**{label}:** {getattr(design_request, field)}"
        for field, label in OPTIONAL_DESCRIPTION_FIELDS
        if getattr(design_request, field)
    ]
    if extras:
        lines.append("")
        lines.extend(extras)

    lines.extend(["", "---", f"Request ID: {design_request.id}"])
    return "\n".join(lines)


def _attach_reference_images(client, card_id, urls):
    """Attach each URL to the card. Returns the number attached."""
    attached = 0
    for url in urls:
        try:
            client.attach_url_to_card(card_id, url)
            attached += 1
        except requests.RequestException as e:
            logger.error(f"Failed to attach {url} to Trello card {card_id}: {e}")
    return attached


def _write_back(design_request, card):
    try:
        design_request.external_card_id = card["id"]
        design_request.external_card_url = card["url"]
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(
            f"Trello card {card['id']} created but request {design_request.id} "
            f"could not be updated: {e}"
        )
        return False
    return True


def sync_request_card(request_id):
    """Create the Trello card for a request and record the link.

    Args:
        request_id: DesignRequest UUID string.

    Returns:
        dict with card_id, card_url, attachments (count attached) and
        linked (whether the write-back succeeded).

    Raises:
        ConfigurationMissing: Trello credentials or list id not set.
        RecordNotFound: No request with that id.
        TrackerRejected: Trello refused the create-card call.
        requests.RequestException: Transport failure on create-card.
    """
    config = _get_trello_config()
    if config is None:
        raise ConfigurationMissing("Trello configuration missing.")

    design_request = db.session.get(DesignRequest, request_id)
    if design_request is None:
        raise RecordNotFound(f"Design request {request_id} not found.")

    if design_request.external_card_id:
        logger.warning(
            f"Request {request_id} already linked to card "
            f"{design_request.external_card_id}; creating another card"
        )

    client = TrelloClient(
        config["api_key"],
        config["token"],
        base_url=config["base_url"],
        timeout=config["timeout"],
    )

    card = client.create_card(
        list_id=config["list_id"],
        name=compose_card_name(design_request),
        description=compose_card_description(design_request),
        due=design_request.deadline.isoformat(),
    )
    logger.info(f"Created Trello card {card['id']} for request {request_id}")

    urls = list(design_request.reference_images or [])
    attached = _attach_reference_images(client, card["id"], urls)
    if attached < len(urls):
        logger.warning(
            f"Attached {attached}/{len(urls)} reference images to card {card['id']}"
        )

    linked = _write_back(design_request, card)

    return {
        "card_id": card["id"],
        "card_url": card["url"],
        "attachments": attached,
        "linked": linked,
    }
