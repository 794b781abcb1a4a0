"""Run agent turns off the UI thread."""

import threading

from zap.agents.react import ReActAgent
from zap.core.errors import ZapError
from zap.core.logging import get_logger
from zap.core.typing import EventCallback
from zap.tools.confirm import ConfirmationManager

logger = get_logger("agents.worker")


class TurnWorker:
    """
    One user turn on a daemon thread.

    The event callback is invoked from the worker thread. Call cancel() from
    the UI thread to stop at the next iteration boundary; a pending file
    confirmation is rejected so the worker is not left waiting on it.
    """

    def __init__(
        self,
        agent: ReActAgent,
        callback: EventCallback,
        confirm: ConfirmationManager | None = None,
    ):
        self.agent = agent
        self.callback = callback
        self.confirm = confirm
        self.result: str | None = None
        self.error: ZapError | None = None
        self._cancel = threading.Event()
        self._thread: threading.Thread | None = None

    def start(self, user_input: str) -> None:
        if self._thread is not None:
            raise RuntimeError("worker already started")
        self._thread = threading.Thread(
            target=self._run, args=(user_input,), name="zap-turn", daemon=True
        )
        self._thread.start()

    def _run(self, user_input: str) -> None:
        try:
            self.result = self.agent.process_message_with_events(
                user_input, self.callback, cancel=self._cancel
            )
        except ZapError as e:
            logger.info(f"Turn ended with {type(e).__name__}: {e}")
            self.error = e

    def cancel(self) -> None:
        self._cancel.set()
        if self.confirm is not None and self.confirm.is_pending():
            self.confirm.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    @property
    def done(self) -> bool:
        return self._thread is not None and not self._thread.is_alive()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the turn. Returns True once it has finished."""
        if self._thread is None:
            return False
        self._thread.join(timeout)
        return not self._thread.is_alive()
