"""Match decoded responses to the calls waiting for them."""

import asyncio
import logging
from typing import Any

from snapmixer.api.errors import copy_error
from snapmixer.api.notifications import NotificationChannel
from snapmixer.api.protocol import JsonRpcNotification

logger = logging.getLogger(__name__)


class RequestCorrelator:
    """Pending request table keyed by the id used on the wire.

    Every registered id maps to a single-resolution future. An inbound
    message resolves a future only if its ``id`` is currently pending;
    everything else (server notifications, late or unknown responses) is
    published to the notification channel.
    """

    def __init__(self, notifications: NotificationChannel) -> None:
        """Initialize the correlator.

        Args:
            notifications: Channel receiving unsolicited messages.
        """
        self._notifications = notifications
        self._pending: dict[str, asyncio.Future[dict[str, Any]]] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def register(self, request_id: str) -> asyncio.Future[dict[str, Any]]:
        """Add a pending entry and return its future.

        Args:
            request_id: Identifier sent with the request.

        Returns:
            Future resolved with the raw response object, or failed with
            ``ConnectionLost`` if the connection faults first.

        Raises:
            ValueError: If the id is already pending.
        """
        if request_id in self._pending:
            raise ValueError(f"Request id {request_id!r} is already pending")
        future: asyncio.Future[dict[str, Any]] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future
        return future

    def discard(self, request_id: str) -> None:
        """Forget a pending entry without resolving it (no-op if absent)."""
        self._pending.pop(request_id, None)

    def dispatch(self, message: Any) -> bool:
        """Route one decoded message.

        Args:
            message: A decoded JSON value from the stream.

        Returns:
            True if the message resolved a pending call, False if it was
            published as a notification.
        """
        future = None
        if isinstance(message, dict):
            request_id = message.get("id")
            if isinstance(request_id, str | int) and not isinstance(request_id, bool):
                future = self._pending.pop(request_id, None)  # type: ignore[arg-type]

        if future is None:
            self._notifications.publish(JsonRpcNotification.from_message(message))
            return False

        if not future.done():
            future.set_result(message)
        return True

    def fail_all(self, error: BaseException) -> int:
        """Fail every pending call and clear the table.

        Args:
            error: Exception delivered (as a copy) to each waiting caller.

        Returns:
            Number of calls that were still waiting.
        """
        pending, self._pending = self._pending, {}
        failed = 0
        for future in pending.values():
            if not future.done():
                future.set_exception(copy_error(error))
                failed += 1
        if failed:
            logger.debug("Failed %d pending request(s): %s", failed, error)
        return failed
