"""Trello REST client — just the two calls the card mirror needs.

Credentials travel as key/token query params, the way Trello's API expects.
Raises TrackerRejected on a non-2xx create; transport errors from requests
propagate untouched.
"""

import logging

import requests

from design_desk.errors import TrackerRejected

logger = logging.getLogger(__name__)


class TrelloClient:
    """Thin wrapper over the Trello cards API."""

    def __init__(self, api_key, token, base_url="https://api.trello.com/1", timeout=15):
        self.api_key = api_key
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _auth_params(self):
        return {"key": self.api_key, "token": self.token}

    def create_card(self, list_id, name, description, due):
        """Create a card at the top of list_id.

        Returns:
            dict with "id" and "url" of the new card.

        Raises:
            TrackerRejected: Trello answered with a non-success status.
        """
        payload = {
            "idList": list_id,
            "name": name,
            "desc": description,
            "due": due,
            "pos": "top",
        }
        resp = requests.post(
            f"{self.base_url}/cards",
            params=self._auth_params(),
            json=payload,
            timeout=self.timeout,
        )
        if not resp.ok:
            raise TrackerRejected(
                f"Failed to create Trello card (HTTP {resp.status_code})",
                tracker_status=resp.status_code,
                body=resp.text,
            )

        card = resp.json()
        return {"id": card["id"], "url": card.get("url") or card.get("shortUrl")}

    def attach_url_to_card(self, card_id, url):
        """Attach an external URL to a card. Raises on any non-2xx response.

        The response body is not read; a 2xx is all that counts.
        """
        resp = requests.post(
            f"{self.base_url}/cards/{card_id}/attachments",
            params=self._auth_params(),
            json={"url": url},
            timeout=self.timeout,
        )
        resp.raise_for_status()
