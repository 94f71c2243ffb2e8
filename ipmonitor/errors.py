"""Error reporting that goes to the screen or, when daemonized, to the log."""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass

_logger = logging.getLogger("ipmonitor")


def _log_error(text: str) -> None:
    _logger.error(text)


def _print_error(text: str) -> None:
    print(text, file=sys.stderr)


@dataclass
class ErrorReporter:
    """Sends formatted error messages to the sink matching the run mode."""

    daemonized: bool = False
    daemon_sink: Callable[[str], None] = _log_error
    interactive_sink: Callable[[str], None] = _print_error

    def report(self, msg: str, *args: object) -> str:
        """Format ``msg`` with ``args`` printf-style, deliver it, and return it."""
        text = msg % args if args else msg
        sink = self.daemon_sink if self.daemonized else self.interactive_sink
        sink(text)
        return text