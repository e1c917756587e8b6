# api_client.py
from __future__ import annotations

import json
import urllib.error
import urllib.request
from typing import Any, Dict, Optional
from urllib.parse import urljoin


class APIError(Exception):
    """Raised when a request to the execution engine fails."""
    pass


class APIClient:
    """HTTP client handing pipeline definitions to the execution engine."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        """
        Initialize API client.

        Args:
            base_url: Base URL of the engine API (e.g., "https://engine.example.com")
            timeout: Socket timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        data: Optional[dict] = None,
        headers: Optional[dict] = None,
    ) -> dict:
        """
        Make an HTTP request to the API.

        Returns:
            Parsed JSON response as dictionary

        Raises:
            APIError: If the request fails
        """
        url = urljoin(self.base_url + "/", path.lstrip("/"))

        req_headers = {
            "Content-Type": "application/json",
        }
        if headers:
            req_headers.update(headers)

        req_data = None
        if data is not None:
            req_data = json.dumps(data).encode("utf-8")

        req = urllib.request.Request(url, data=req_data, headers=req_headers, method=method)

        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                response_data = response.read().decode("utf-8")
                if response_data:
                    return json.loads(response_data)
                return {}
        except urllib.error.HTTPError as e:
            error_body = e.read().decode("utf-8") if e.fp else ""
            raise APIError(f"API request failed: {e.code} {e.reason}. {error_body}") from e
        except urllib.error.URLError as e:
            raise APIError(f"Network error: {e.reason}") from e
        except json.JSONDecodeError as e:
            raise APIError(f"Invalid JSON response: {e}") from e

    def submit(self, definition: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create or update a pipeline from a rendered definition.

        Returns the engine's response, e.g. {"pipeline": "...", "version": 3}.
        """
        name = definition.get("pipeline", {}).get("name")
        if not name:
            raise APIError("Definition has no pipeline name")
        return self._request("PUT", f"/pipelines/{name}", data=definition)
