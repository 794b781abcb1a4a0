"""
Human-in-the-loop confirmation.

A tool thread blocks in request_confirmation() while the UI thread decides
and answers with send_response(). One request is outstanding at a time.
"""

import queue
import threading
from collections.abc import Callable

from zap.core.config import DEFAULT_CONFIRMATION_TIMEOUT
from zap.core.logging import get_logger

logger = get_logger("tools.confirm")


class ConfirmationManager:
    """Single-slot approve/reject handshake with a timeout."""

    def __init__(
        self,
        timeout: float = DEFAULT_CONFIRMATION_TIMEOUT,
        on_timeout: Callable[[], None] | None = None,
    ):
        """Initialize manager.

        Args:
            timeout: Seconds to wait for a response before rejecting
            on_timeout: Invoked once each time a request times out
        """
        self._lock = threading.Lock()
        self._responses: queue.Queue[bool] = queue.Queue(maxsize=1)
        self._pending = False
        self.timeout = timeout
        self.on_timeout = on_timeout

    def request_confirmation(self) -> bool:
        """
        Block until the user responds or the timeout elapses.

        Returns:
            True if approved; False if rejected or timed out
        """
        with self._lock:
            self._pending = True
            # Drop a response that arrived after an earlier request timed out
            try:
                self._responses.get_nowait()
            except queue.Empty:
                pass

        try:
            approved = self._responses.get(timeout=self.timeout)
        except queue.Empty:
            with self._lock:
                self._pending = False
            logger.warning(f"Confirmation timed out after {self.timeout}s, rejecting")
            if self.on_timeout is not None:
                self.on_timeout()
            return False

        with self._lock:
            self._pending = False
        logger.info(f"Confirmation {'approved' if approved else 'rejected'}")
        return approved

    def send_response(self, approved: bool) -> None:
        """Deliver the user's decision. No effect when nothing is pending."""
        with self._lock:
            if not self._pending:
                return
            try:
                self._responses.put_nowait(approved)
            except queue.Full:
                pass

    def is_pending(self) -> bool:
        with self._lock:
            return self._pending

    def cancel(self) -> None:
        """Reject any pending request."""
        self.send_response(False)
