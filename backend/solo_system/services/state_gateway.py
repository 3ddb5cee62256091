from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.parse
import urllib.request
from typing import Any, Protocol

from pydantic import ValidationError

from solo_system.core.config import Settings
from solo_system.core.security import bearer_headers
from solo_system.schemas.progress import ProgressEntry, ProgressListResponse
from solo_system.schemas.state import ProgressState, StateLoadResponse


class GatewayError(RuntimeError):
    """Transport or server failure while talking to the state store."""


class StateGateway(Protocol):
    def load(self, user_id: str) -> ProgressState | None: ...

    def save(self, user_id: str, state: ProgressState) -> None: ...

    def load_history(self, user_id: str) -> list[ProgressEntry]: ...

    def append_history(self, user_id: str, entry: ProgressEntry) -> None: ...


class HttpStateGateway:
    """Blocking client for the state store API."""

    def __init__(self, *, base_url: str, api_key: str, timeout_seconds: float = 5.0) -> None:
        self._base_url = base_url.rstrip("/") + "/"
        self._api_key = api_key
        self._timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> HttpStateGateway:
        return cls(
            base_url=settings.api_base_url,
            api_key=settings.app_api_key,
            timeout_seconds=settings.http_timeout_seconds,
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        query: dict[str, str] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        endpoint = urllib.parse.urljoin(self._base_url, path)
        if query:
            endpoint = f"{endpoint}?{urllib.parse.urlencode(query)}"

        headers = bearer_headers(self._api_key)
        data = None
        if body is not None:
            data = json.dumps(body).encode("utf-8")
            headers["Content-Type"] = "application/json"

        request = urllib.request.Request(endpoint, data=data, headers=headers, method=method)
        try:
            with urllib.request.urlopen(request, timeout=self._timeout_seconds) as response:
                return json.loads(response.read().decode("utf-8"))
        except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
            raise GatewayError(f"{method} {path} failed: {exc}") from exc

    def load(self, user_id: str) -> ProgressState | None:
        payload = self._request("GET", "load", query={"user_id": user_id})
        try:
            result = StateLoadResponse.model_validate(payload)
        except ValidationError as exc:
            raise GatewayError("Malformed load response") from exc
        if not result.exists:
            return None
        return result.state

    def save(self, user_id: str, state: ProgressState) -> None:
        body = {"user_id": user_id, **state.model_dump(mode="json")}
        self._request("POST", "save", body=body)

    def load_history(self, user_id: str) -> list[ProgressEntry]:
        payload = self._request("GET", "progress", query={"user_id": user_id})
        try:
            return ProgressListResponse.model_validate(payload).progress
        except ValidationError as exc:
            raise GatewayError("Malformed progress response") from exc

    def append_history(self, user_id: str, entry: ProgressEntry) -> None:
        body = {"user_id": user_id, "entry": entry.model_dump(mode="json")}
        self._request("POST", "progress", body=body)
