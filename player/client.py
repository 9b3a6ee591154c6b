"""
HTTP client for the DJ API.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from shared.constants import DEFAULT_NETWORK_TIMEOUT
from shared.models import TrackResponse

logger = logging.getLogger(__name__)


class ApiRequestError(Exception):
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"HTTP {status}: {message}")


class DJClient:
    def __init__(self, base_url: str, session: Optional[requests.Session] = None,
                 timeout: int = DEFAULT_NETWORK_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        if response.status_code >= 400:
            try:
                message = response.json().get("error", response.text)
            except ValueError:
                message = response.text
            raise ApiRequestError(response.status_code, message)
        return response.json()

    def get_track(self, track_id: str) -> TrackResponse:
        return TrackResponse.from_dict(self._request("GET", f"/track/{track_id}"))

    def random_track(self, anon_id: str) -> TrackResponse:
        return TrackResponse.from_dict(self._request("POST", "/track/random", json={"anonId": anon_id}))

    def get_albums(self, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        return self._request("GET", "/albums", params={"page": page, "limit": limit})

    def get_album_tracks(self, album_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/albums/{album_id}/tracks")

    def search(self, query: str) -> List[str]:
        return self._request("GET", "/search", params={"q": query})

    def artists_albums(self, page: int = 1, per_page: int = 10,
                       album_ids: Optional[List[str]] = None) -> List[Dict[str, Any]]:
        """Paged listing, or the rows for specific albums when `album_ids` is given."""
        if album_ids is not None:
            return self._request("POST", "/artists/albums", params={"paged": "false"}, json=album_ids)
        return self._request("GET", "/artists/albums",
                             params={"paged": "true", "page": page, "per_page": per_page})
