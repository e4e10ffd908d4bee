"""Active window metadata attached to each snapshot."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

logger = logging.getLogger(__name__)

UNKNOWN_APP = "Unknown"


@dataclass(frozen=True)
class WindowInfo:
    app_name: str = UNKNOWN_APP
    window_title: str = ""


class WindowProvider(Protocol):
    def active_window(self, at: datetime) -> WindowInfo | None: ...


class UnknownWindowProvider:
    """Used when no platform provider is configured."""

    def active_window(self, at: datetime) -> WindowInfo | None:
        return None


def lookup_window(provider: WindowProvider, at: datetime) -> WindowInfo:
    """Ask *provider* for the active window, falling back to ``Unknown``.

    Provider failures are logged and never propagated.
    """
    try:
        info = provider.active_window(at)
    except Exception as exc:
        logger.debug("Window lookup failed: %s", exc)
        return WindowInfo()
    if info is None:
        return WindowInfo()
    return WindowInfo(
        app_name=(info.app_name or "").strip() or UNKNOWN_APP,
        window_title=(info.window_title or "").strip(),
    )
