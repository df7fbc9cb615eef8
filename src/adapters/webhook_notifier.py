"""Mattermost incoming-webhook notification adapter.

Posts Markdown messages to an incoming webhook and implements the single
channel-not-found fallback: when the named channel does not exist, the
message is resent once to the webhook's default channel with a warning line.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Callable, Optional

from core.errors import DeliveryError
from core.formatting import channel_warning

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 2
MAX_ATTEMPTS = 2
MAX_BODY_BYTES = 512
TRUNCATED_MARKER = "... **TRUNCATED**"
CHANNEL_NOT_FOUND_ID = "web.incoming_webhook.channel.app_error"


@dataclass(frozen=True)
class WebhookResponse:
    """Status, lower-cased headers and body of one webhook round trip."""

    status: int
    headers: dict[str, str]
    raw_body: bytes

    @property
    def body(self) -> str:
        """Body for diagnostics, truncated when long."""

        if len(self.raw_body) > MAX_BODY_BYTES:
            return self.raw_body[:MAX_BODY_BYTES].decode("utf-8", errors="replace") + TRUNCATED_MARKER
        return self.raw_body.decode("utf-8", errors="replace")

    def is_channel_not_found(self) -> bool:
        if self.status != 404:
            return False
        if self.headers.get("content-type") != "application/json":
            return False
        try:
            decoded = json.loads(self.raw_body.decode("utf-8"))
        except ValueError:
            return False
        return isinstance(decoded, dict) and decoded.get("id") == CHANNEL_NOT_FOUND_ID


def _parse_headers(headers: Any) -> dict[str, str]:
    if headers is None:
        return {}
    return {str(key).strip().lower(): str(value).strip() for key, value in headers.items()}


class WebhookNotifier:
    """Notifier adapter that delivers messages to a Mattermost incoming webhook."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        opener: Callable[..., Any] = urllib.request.urlopen,
    ) -> None:
        self._timeout = timeout
        self._opener = opener

    def _post(self, url: str, channel: Optional[str], message: str) -> WebhookResponse:
        payload: dict[str, str] = {"text": message}
        if channel:
            payload["channel"] = channel
        data = json.dumps(payload).encode("utf-8")
        request = urllib.request.Request(url, data=data, method="POST")
        request.add_header("Content-Type", "application/json")

        try:
            with self._opener(request, timeout=self._timeout) as response:
                return WebhookResponse(
                    status=response.status,
                    headers=_parse_headers(response.headers),
                    raw_body=response.read(),
                )
        except urllib.error.HTTPError as e:
            # Non-2xx answers still carry the headers and body we need.
            return WebhookResponse(
                status=e.code,
                headers=_parse_headers(e.headers),
                raw_body=e.read() or b"",
            )
        except (urllib.error.URLError, http.client.HTTPException, OSError) as e:
            # HTTPException covers malformed or truncated responses, which are not OSErrors.
            raise DeliveryError(f"Transport error: {e}") from e

    def deliver(self, url: str, channel: Optional[str], message: str) -> None:
        """Send ``message`` to ``url``, raising DeliveryError on failure."""

        target = channel
        text = message
        for attempt in range(1, MAX_ATTEMPTS + 1):
            response = self._post(url, target, text)

            if response.status == 200:
                if response.raw_body == b"ok":
                    return
                raise DeliveryError(
                    f"Received HTTP 200, but expected response data 'ok' rather than: {response.body}",
                    status=response.status,
                    body=response.body,
                )

            if attempt == 1 and target and response.is_channel_not_found():
                LOGGER.warning("Channel %s not found, retrying with the default channel", target)
                text = f"{message}\n\n{channel_warning(target)}"
                target = None
                continue

            break

        raise DeliveryError(
            f"Received HTTP {response.status}: {response.body}",
            status=response.status,
            body=response.body,
        )
