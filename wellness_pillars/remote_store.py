from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

ENTRIES_COLLECTION = "wellness-entries"
SETTINGS_COLLECTION = "user-settings"


class RemoteMirror:
    """
    Best-effort mirror to an HTTP document store.

    Documents live at ``{base_url}/{collection}/{doc_id}``: PUT a JSON body to
    persist, GET to fetch. Failures are logged and reported as False / None,
    never raised.
    """

    def __init__(self, base_url: str, token: str = "", timeout: float = 10):
        if not base_url:
            raise RuntimeError("Remote store URL is not set")
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def _url(self, collection: str, doc_id: str) -> str:
        return f"{self.base_url}/{collection}/{doc_id}"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def persist(self, collection: str, doc_id: str, payload: Dict[str, Any]) -> bool:
        url = self._url(collection, doc_id)
        try:
            resp = requests.put(url, json=payload, headers=self._headers(), timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.warning("remote write failed for %s/%s: %s", collection, doc_id, e)
            return False
        logger.debug("remote write ok for %s/%s", collection, doc_id)
        return True

    def fetch(self, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        url = self._url(collection, doc_id)
        try:
            resp = requests.get(url, headers=self._headers(), timeout=self.timeout)
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            data = resp.json()
        except (requests.RequestException, ValueError) as e:
            logger.warning("remote read failed for %s/%s: %s", collection, doc_id, e)
            return None
        if not isinstance(data, dict):
            logger.warning("remote document %s/%s is not an object", collection, doc_id)
            return None
        return data
