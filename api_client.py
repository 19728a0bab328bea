# client/api_client.py

import logging
from typing import Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """The server could not be reached or answered with something that is not JSON."""


class ApiError(Exception):
    """The server answered with a non-2xx status and an ``{"error": ...}`` body."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class FalconClient:
    """Thin wrapper over the backend's JSON endpoints."""

    def __init__(self, base_url: str, token: Optional[str] = None,
                 session: Optional[requests.Session] = None, timeout: float = 120):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _headers(self, auth: bool) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if auth:
            headers["Authorization"] = f"Bearer {self.token}" if self.token else ""
        return headers

    def _request(self, method: str, path: str, payload: dict = None, auth: bool = False) -> dict:
        url = f"{self.base_url}{path}"
        try:
            r = self.session.request(
                method, url, json=payload, headers=self._headers(auth), timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error("%s %s failed: %s", method, path, e)
            raise NetworkError(str(e))
        try:
            data = r.json()
        except ValueError:
            raise NetworkError(f"Invalid response from server ({r.status_code})")

        if not r.ok:
            message = data.get("error") if isinstance(data, dict) else None
            raise ApiError(r.status_code, message or f"Request failed ({r.status_code})")
        return data

    # ─── endpoints ───
    def health(self) -> dict:
        return self._request("GET", "/api/health")

    def register(self, name: str, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/register",
                             {"name": name, "email": email, "password": password})
        self.token = data.get("token")
        return data

    def login(self, email: str, password: str) -> dict:
        data = self._request("POST", "/api/auth/login", {"email": email, "password": password})
        self.token = data.get("token")
        return data

    def chat(self, messages: List[Dict[str, str]], provider: str = "groq") -> dict:
        return self._request("POST", "/api/chat",
                             {"provider": provider, "messages": messages}, auth=True)

    def generate_image(self, prompt: str) -> dict:
        return self._request("POST", "/api/image/generate", {"prompt": prompt}, auth=True)

    def weather(self, city: str) -> dict:
        return self._request("POST", "/api/tools/weather", {"city": city})
