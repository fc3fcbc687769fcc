"""Storage service — reference image uploads to Supabase Storage (prod) or local disk (dev).

Supabase bucket: reference-images (must be created and marked public in the
Supabase dashboard).
Local fallback: instance/uploads/ directory, served by the app in debug mode only
(a warning is logged when it hands out URLs outside debug).

Uploads are best-effort: a file that cannot be stored is logged and left out
of the result so one bad attachment never blocks the request itself.
"""

import logging
import os
import secrets
import time

import requests
from flask import current_app

from design_desk.errors import StorageError

logger = logging.getLogger(__name__)

# Max file size: 10 MB
MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024


def _get_supabase_config():
    """Return Supabase storage config if available, else None."""
    url = current_app.config.get("SUPABASE_URL")
    key = current_app.config.get("SUPABASE_SERVICE_KEY")
    bucket = current_app.config.get("SUPABASE_STORAGE_BUCKET", "reference-images")

    if url and key:
        return {"url": url.rstrip("/"), "key": key, "bucket": bucket}
    return None


def generate_storage_key(filename):
    """Build a collision-free key: random token, millisecond timestamp, original extension.

    Two uploads of "logo.png" in the same submission still get distinct keys.
    """
    ext = os.path.splitext(filename or "")[1].lower()
    token = secrets.token_hex(8)
    millis = int(time.time() * 1000)
    return f"{token}-{millis}{ext}"


def put_blob(key, data, content_type="application/octet-stream"):
    """Store bytes under key. Raises StorageError on failure."""
    supabase = _get_supabase_config()
    if supabase:
        _put_supabase(supabase, key, data, content_type)
    else:
        _put_local(key, data)


def public_url(key):
    """Return the publicly fetchable URL for a stored key."""
    supabase = _get_supabase_config()
    if supabase:
        return f"{supabase['url']}/storage/v1/object/public/{supabase['bucket']}/{key}"
    if not current_app.debug:
        logger.warning(
            f"Supabase storage not configured; /uploads/{key} is only served in debug mode"
        )
    return f"/uploads/{key}"


def _put_supabase(config, key, data, content_type):
    url = f"{config['url']}/storage/v1/object/{config['bucket']}/{key}"

    headers = {
        "Authorization": f"Bearer {config['key']}",
        "Content-Type": content_type,
    }

    try:
        resp = requests.post(
            url,
            headers=headers,
            data=data,
            timeout=current_app.config.get("STORAGE_TIMEOUT", 30),
        )
    except requests.RequestException as e:
        raise StorageError(f"Supabase upload failed for {key}: {e}") from e

    if not resp.ok:
        raise StorageError(
            f"Supabase upload failed for {key}: HTTP {resp.status_code} {resp.text[:200]}"
        )
    logger.info(f"Uploaded to Supabase: {key}")


def _put_local(key, data):
    """Write to the instance uploads dir (dev fallback)."""
    upload_dir = os.path.join(current_app.instance_path, "uploads")
    filepath = os.path.join(upload_dir, key)
    try:
        os.makedirs(upload_dir, exist_ok=True)
        with open(filepath, "wb") as f:
            f.write(data)
    except OSError as e:
        raise StorageError(f"Local upload failed for {key}: {e}") from e

    logger.info(f"Uploaded locally: {filepath}")


def upload_attachment(file):
    """Upload one file and return its public URL.

    Args:
        file: Werkzeug FileStorage (or anything with .filename and .read()).

    Raises:
        StorageError: If the file is empty, too large, or the store rejects it.
    """
    filename = getattr(file, "filename", None)
    if not filename:
        raise StorageError("Attachment has no filename.")

    data = file.read()
    if not data:
        raise StorageError(f"Attachment '{filename}' is empty.")
    if len(data) > MAX_ATTACHMENT_SIZE:
        raise StorageError(
            f"Attachment '{filename}' is too large "
            f"({len(data) / (1024 * 1024):.1f} MB). Maximum is 10 MB."
        )

    content_type = getattr(file, "content_type", None) or "application/octet-stream"
    key = generate_storage_key(filename)
    put_blob(key, data, content_type)
    return public_url(key)


def upload_attachments(files):
    """Upload files in order, skipping any that fail.

    Returns:
        List of public URLs in the same order as the files that succeeded.
    """
    urls = []
    for position, file in enumerate(files or []):
        try:
            urls.append(upload_attachment(file))
        except StorageError as e:
            logger.error(f"Skipping attachment #{position}: {e}")
    return urls
