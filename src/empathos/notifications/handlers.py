"""Ready-made action subscribers — structured log and webhook delivery."""

from __future__ import annotations

import httpx
import structlog

from empathos.models import ActionEvent

logger = structlog.get_logger(__name__)


def log_action(action: ActionEvent) -> None:
    """Write the action to the structured log."""
    logger.info(
        "notification.action",
        action_id=action.id,
        type=action.type.value,
        priority=action.priority.value,
        triggered_by=action.triggered_by,
    )


class WebhookSubscriber:
    """POST each action as JSON to an external webhook URL.

    Failures raise, so the dispatcher logs them against this subscriber.
    Register with ``background=True`` to keep network latency out of the
    fusion cycle.
    """

    name = "webhook"

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=timeout)

    def __call__(self, action: ActionEvent) -> None:
        resp = self._client.post(self._url, json=action.model_dump(mode="json"))
        resp.raise_for_status()
        logger.info("notification.webhook_sent", url=self._url, action_id=action.id)

    def close(self) -> None:
        self._client.close()
