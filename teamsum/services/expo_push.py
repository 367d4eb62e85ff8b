from __future__ import annotations
import httpx
import structlog

from ..pipeline.constants import PUSH_CHANNEL_ID

log = structlog.get_logger()

EXPO_PUSH_URL = "https://exp.host/--/api/v2/push/send"

class ExpoPushClient:
    """Expo push sender used by the orchestrator's worker thread.

    ``transport`` is handed to ``httpx.Client`` (tests pass an ``httpx.MockTransport``).
    """

    def __init__(
        self,
        url: str = EXPO_PUSH_URL,
        access_token: str | None = None,
        timeout: float = 15.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.url = url
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    def _headers(self) -> dict:
        headers = {"Accept": "application/json", "Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        return headers

    def build_messages(self, tokens: list[str], title: str, body: str, data: dict | None = None) -> list[dict]:
        return [
            {
                "to": token,
                "sound": "default",
                "title": title,
                "body": body,
                "data": data or {},
                "channelId": PUSH_CHANNEL_ID,
            }
            for token in tokens
            if token
        ]

    def send_sync(self, tokens: list[str], title: str, body: str, data: dict | None = None) -> bool:
        messages = self.build_messages(tokens, title, body, data)
        if not messages:
            return False
        with httpx.Client(timeout=self.timeout, transport=self.transport) as client:
            r = client.post(self.url, json=messages, headers=self._headers())
            if r.status_code != 200:
                log.warning("expo_push_failed", status=r.status_code, body=r.text[:500])
                return False
            return True
