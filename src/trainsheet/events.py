"""Diagnostic events and user-facing notifications."""

import logging
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)

# (level, message, context)
DiagnosticSink = Callable[[str, str, Dict[str, Any]], None]
# (message, kind) where kind is "success", "info", "warning" or "error"
NotificationSink = Callable[[str, str], None]

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class EventLog:
    """
    Routes import events to the logging system and to optional external sinks.

    A failing sink never propagates: the import outcome matters more than its
    telemetry.
    """

    def __init__(
        self,
        diagnostic_sink: Optional[DiagnosticSink] = None,
        notification_sink: Optional[NotificationSink] = None,
        component: str = "trainsheet",
        log: Optional[logging.Logger] = None,
    ):
        self.diagnostic_sink = diagnostic_sink
        self.notification_sink = notification_sink
        self.component = component
        self._logger = log or logger

    def emit(self, level: str, message: str, exc_info: bool = False, **context: Any) -> None:
        context.setdefault("component", self.component)
        self._logger.log(
            _LEVELS.get(level, logging.INFO),
            message,
            exc_info=exc_info,
            extra={"context": context},
        )
        if self.diagnostic_sink is None:
            return
        try:
            self.diagnostic_sink(level, message, context)
        except Exception as e:
            self._logger.debug(f"Diagnostic sink failed: {e}")

    def debug(self, message: str, **context: Any) -> None:
        self.emit("debug", message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.emit("info", message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.emit("warning", message, **context)

    def error(self, message: str, exc_info: bool = False, **context: Any) -> None:
        self.emit("error", message, exc_info=exc_info, **context)

    def notify(self, message: str, kind: str = "info") -> None:
        """Send a short human-readable outcome to the user."""
        if self.notification_sink is None:
            self._logger.debug(f"[{kind}] {message}")
            return
        try:
            self.notification_sink(message, kind)
        except Exception as e:
            self._logger.debug(f"Notification sink failed: {e}")
