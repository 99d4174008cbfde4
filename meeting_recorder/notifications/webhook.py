"""
Phase change notifications.

Posts a small status document to an optional backend webhook whenever a
session changes phase. Delivery is best-effort: failures are logged and
dropped, never retried.
"""

from typing import Any, Dict, Optional

import httpx

from meeting_recorder.config import BackendSettings, get_logger

logger = get_logger("webhook")

PAYLOAD_FIELDS = (
    "meeting_id",
    "title",
    "phase",
    "recording",
    "participant_count",
    "error",
    "end_reason",
)


class WebhookNotifier:
    """Sends session status to the backend."""

    def __init__(self, backend_settings: BackendSettings, client: Optional[httpx.AsyncClient] = None):
        self._settings = backend_settings
        self._client = client

    @property
    def enabled(self) -> bool:
        return bool(self._settings.webhook_url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self._settings.api_key:
                headers["X-API-Key"] = self._settings.api_key
            self._client = httpx.AsyncClient(headers=headers, timeout=self._settings.timeout_seconds)
        return self._client

    async def phase_changed(self, snapshot: Dict[str, Any]) -> None:
        """
        Phase listener for ConferenceController.

        Args:
            snapshot: Controller status taken at the moment of the transition
        """
        if not self.enabled:
            return

        payload = {field: snapshot.get(field) for field in PAYLOAD_FIELDS}
        try:
            response = await self._get_client().post(self._settings.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to report phase '{payload['phase']}' for {payload['meeting_id']}: {e}")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
