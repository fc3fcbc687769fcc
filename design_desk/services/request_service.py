"""Request service — intake, listing, status changes, deletion.

All free text is sanitized with bleach.clean() before insert. Status moves
freely between any two values; the only gate is that a request must be
completed before it can be deleted.

Unlike the flush-only helpers elsewhere, every function here commits: each
one is a full user action whose outcome the caller reports back.
"""

import html
import logging
import re
from collections.abc import Mapping
from datetime import date

import bleach
import requests
from sqlalchemy import func
from sqlalchemy.exc import OperationalError, ProgrammingError

from design_desk.errors import (
    DesignRequestError,
    PermissionDenied,
    PreconditionFailed,
    RecordNotFound,
    ValidationError,
)
from design_desk.extensions import db
from design_desk.models.design_request import DesignRequest
from design_desk.services import card_sync_service, storage_service

logger = logging.getLogger(__name__)

# Simple email regex — not exhaustive, just sanity-check
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MAX_LENGTHS = {
    "requester_name": 255,
    "requester_email": 255,
    "department": 255,
    "title": 255,
    "dimensions": 255,
}


def _sanitize(text):
    """Strip all HTML tags from user input, keeping the plain text as typed.

    bleach escapes what it leaves behind; values here go to JSON and a
    markdown card body, so entities are turned back into characters.
    """
    if text is None:
        return text
    return html.unescape(bleach.clean(str(text), tags=[], strip=True)).strip()


def _parse_deadline(value):
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip())
    except ValueError:
        return None


def validate_fields(fields):
    """Sanitize and validate raw form fields.

    Args:
        fields: Mapping of form field names to raw values.

    Returns:
        Dict of cleaned column values ready for DesignRequest(**cleaned).

    Raises:
        ValidationError: Listing every problem found.
    """
    if fields is None:
        fields = {}
    if not isinstance(fields, Mapping):
        raise ValidationError("Request body must be a JSON object.")
    cleaned = {}
    errors = []

    for name in DesignRequest.REQUIRED_FIELDS:
        raw = fields.get(name)
        if name == "deadline":
            cleaned[name] = raw
            if raw in (None, ""):
                errors.append("deadline is required.")
            continue
        value = _sanitize(raw)
        if not value:
            errors.append(f"{name} is required.")
        cleaned[name] = value

    for name in DesignRequest.OPTIONAL_FIELDS:
        cleaned[name] = _sanitize(fields.get(name)) or None

    for name, limit in MAX_LENGTHS.items():
        if cleaned.get(name) and len(cleaned[name]) > limit:
            errors.append(f"{name} is too long (max {limit} characters).")

    email = cleaned.get("requester_email")
    if email and not EMAIL_RE.match(email):
        errors.append("requester_email must be a valid email address.")

    request_type = cleaned.get("request_type")
    if request_type and request_type not in DesignRequest.REQUEST_TYPES:
        errors.append(
            f"Invalid request_type '{request_type}'. "
            f"Must be one of: {', '.join(DesignRequest.REQUEST_TYPES)}"
        )

    priority = cleaned.get("priority")
    if priority and priority not in DesignRequest.PRIORITIES:
        errors.append(
            f"Invalid priority '{priority}'. "
            f"Must be one of: {', '.join(DesignRequest.PRIORITIES)}"
        )

    if cleaned.get("deadline") not in (None, ""):
        deadline = _parse_deadline(cleaned["deadline"])
        if deadline is None:
            errors.append("deadline must be a date in YYYY-MM-DD format.")
        cleaned["deadline"] = deadline

    if errors:
        raise ValidationError(errors=errors)
    return cleaned


def submit_request(fields, files=None):
    """Create a design request and mirror it to Trello.

    Order is fixed: upload attachments, insert the record, then sync the
    card. Upload and sync failures are logged and never fail the
    submission; only validation or the insert itself can.

    Args:
        fields: Raw form fields.
        files: Optional sequence of uploaded files (reference images).

    Returns:
        The committed DesignRequest (status "pending").

    Raises:
        ValidationError: Before any upload or insert happens.
    """
    cleaned = validate_fields(fields)

    image_urls = storage_service.upload_attachments(files or [])

    design_request = DesignRequest(
        **cleaned,
        reference_images=image_urls,
        status="pending",
    )
    db.session.add(design_request)
    db.session.commit()
    request_id = design_request.id
    logger.info(
        f"Design request {request_id} created "
        f"({len(image_urls)}/{len(files or [])} attachments stored)"
    )

    try:
        card_sync_service.sync_request_card(request_id)
    except (DesignRequestError, requests.RequestException) as e:
        logger.error(f"Trello sync failed for request {request_id}: {e}")
    except Exception:
        logger.exception(f"Unexpected error syncing request {request_id}")

    return design_request


def get_request(request_id):
    design_request = db.session.get(DesignRequest, request_id)
    if design_request is None:
        raise RecordNotFound(f"Design request {request_id} not found.")
    return design_request


def list_requests(status=None):
    """List requests newest first, optionally filtered by status.

    Raises:
        ValidationError: If status is given but not a known value.
    """
    query = DesignRequest.query
    if status:
        if status not in DesignRequest.STATUSES:
            raise ValidationError(
                f"Invalid status '{status}'. "
                f"Must be one of: {', '.join(DesignRequest.STATUSES)}"
            )
        query = query.filter_by(status=status)
    return query.order_by(DesignRequest.created_at.desc()).all()


def status_counts():
    """Count requests per status, plus a total."""
    rows = (
        db.session.query(DesignRequest.status, func.count(DesignRequest.id))
        .group_by(DesignRequest.status)
        .all()
    )
    counts = {status: 0 for status in DesignRequest.STATUSES}
    counts.update({status: count for status, count in rows})
    counts["total"] = sum(count for _, count in rows)
    return counts


def _commit_or_deny(action, request_id):
    try:
        db.session.commit()
    except (OperationalError, ProgrammingError) as e:
        db.session.rollback()
        logger.error(f"Store rejected {action} for request {request_id}: {e}")
        raise PermissionDenied(
            f"Could not {action} request {request_id}. Check your permissions."
        ) from e


def set_status(request_id, new_status):
    """Change a request's status. Only the status column is touched.

    Raises:
        ValidationError: Unknown status value.
        RecordNotFound: No request with that id.
        PermissionDenied: The store refused the write.
    """
    if new_status not in DesignRequest.STATUSES:
        raise ValidationError(
            f"Invalid status '{new_status}'. "
            f"Must be one of: {', '.join(DesignRequest.STATUSES)}"
        )

    design_request = get_request(request_id)
    old_status = design_request.status
    if old_status == new_status:
        return design_request  # no-op

    design_request.status = new_status
    _commit_or_deny("update", request_id)

    logger.info(f"Request {request_id} status {old_status} -> {new_status}")
    return design_request


def delete_request(request_id):
    """Delete a completed request. Deleting a missing id is a no-op.

    Raises:
        PreconditionFailed: Request exists but is not completed.
        PermissionDenied: The store refused the delete.
    """
    design_request = db.session.get(DesignRequest, request_id)
    if design_request is None:
        return

    if not design_request.can_delete:
        raise PreconditionFailed(
            f"Only completed requests can be deleted "
            f"(request {request_id} is '{design_request.status}')."
        )

    db.session.delete(design_request)
    _commit_or_deny("delete", request_id)
    logger.info(f"Request {request_id} deleted")
