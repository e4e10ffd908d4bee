"""Application categories and focus weights.

Categorisation is a two-tier lookup: browser window titles first (a browser
is only as productive as the page it shows), then the user's explicit
overrides, then the static table of known applications, then ``personal``.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)

CORE = "core"
PERSONAL = "personal"
DISTRACTION = "distraction"
IDLE = "idle"

CATEGORIES: tuple[str, ...] = (CORE, PERSONAL, DISTRACTION, IDLE)
DEFAULT_CATEGORY = PERSONAL

_BROWSERS: frozenset[str] = frozenset(
    ["safari", "google chrome", "chrome", "chromium", "firefox", "brave", "arc", "edge",
     "microsoft edge", "opera", "vivaldi"]
)

# Checked in order; the first substring found in the title wins.
_TITLE_PATTERNS: tuple[tuple[str, str], ...] = (
    ("youtube", DISTRACTION),
    ("twitter", DISTRACTION),
    ("x.com", DISTRACTION),
    ("facebook", DISTRACTION),
    ("instagram", DISTRACTION),
    ("reddit", DISTRACTION),
    ("tiktok", DISTRACTION),
    ("netflix", DISTRACTION),
    ("twitch", DISTRACTION),
    ("hacker news", DISTRACTION),
    ("github", CORE),
    ("gitlab", CORE),
    ("bitbucket", CORE),
    ("stackoverflow", CORE),
    ("stack overflow", CORE),
    ("jira", CORE),
    ("confluence", CORE),
    ("notion", CORE),
    ("figma", CORE),
    ("linear", CORE),
    ("vercel", CORE),
    ("netlify", CORE),
    ("aws", CORE),
    ("azure", CORE),
    ("google cloud", CORE),
    ("firebase", CORE),
    ("supabase", CORE),
    ("docs.google.com", CORE),
    ("sheets.google.com", CORE),
    ("drive.google.com", CORE),
)

_KNOWN_APPS: dict[str, str] = {
    # development
    **dict.fromkeys(
        ["xcode", "visual studio code", "code", "cursor", "android studio", "intellij idea",
         "pycharm", "webstorm", "sublime text", "vim", "neovim", "emacs", "terminal",
         "gnome-terminal", "konsole", "alacritty", "kitty", "iterm", "iterm2", "warp",
         "github desktop", "sourcetree", "postman", "insomnia", "docker", "dbeaver",
         "tableplus", "figma", "sketch", "inkscape", "gimp", "blender"],
        CORE,
    ),
    # office and planning
    **dict.fromkeys(
        ["microsoft word", "microsoft excel", "microsoft powerpoint", "libreoffice",
         "pages", "numbers", "keynote", "notion", "obsidian", "typora", "linear", "jira",
         "asana", "trello", "clickup"],
        CORE,
    ),
    # work communication
    **dict.fromkeys(
        ["slack", "microsoft teams", "zoom", "google meet", "webex", "discord", "mattermost"],
        CORE,
    ),
    **dict.fromkeys(
        ["calendar", "reminders", "notes", "todoist", "things", "mail", "thunderbird",
         "spark", "maps", "weather", "calculator", "preview", "finder", "files", "nautilus",
         "photos", "music", "spotify", "podcasts", "books", "kindle"],
        PERSONAL,
    ),
    **dict.fromkeys(
        ["twitter", "x", "facebook", "instagram", "tiktok", "whatsapp", "telegram", "signal",
         "messenger", "linkedin", "pinterest", "mastodon", "youtube", "netflix", "twitch",
         "vlc", "mpv", "plex", "reddit", "news", "steam", "app store"],
        DISTRACTION,
    ),
    **dict.fromkeys(sorted(_BROWSERS), PERSONAL),
    "loginwindow": IDLE,
    "screensaver": IDLE,
}

# Category labels that carry a focus weight.
_FULL_WEIGHT: frozenset[str] = frozenset(
    [CORE, "productive", "developer", "work", "coding", "design"]
)
_HALF_WEIGHT: frozenset[str] = frozenset(["communication", "email", "messaging"])
_ZERO_WEIGHT: frozenset[str] = frozenset(
    [DISTRACTION, IDLE, "entertainment", "social", "games"]
)

# Substring allow-lists used when the category says nothing about focus.
_PRODUCTIVE_APPS: tuple[str, ...] = (
    "xcode", "vs code", "visual studio code", "terminal", "cursor", "pycharm", "figma",
    "sketch", "notion", "obsidian", "slack",
)
_COMMUNICATION_APPS: tuple[str, ...] = ("mail", "messages", "thunderbird", "outlook")


def is_browser(app_name: str) -> bool:
    return app_name.strip().lower() in _BROWSERS


def category_weight(category: str | None) -> float | None:
    """Focus weight implied by *category*, or None if it implies none."""
    if not category:
        return None
    label = category.strip().lower()
    if label in _FULL_WEIGHT:
        return 1.0
    if label in _HALF_WEIGHT:
        return 0.5
    if label in _ZERO_WEIGHT:
        return 0.0
    return None


def app_weight(app_name: str) -> float:
    """Focus weight from the static application allow-lists."""
    name = app_name.lower()
    if any(p in name for p in _PRODUCTIVE_APPS):
        return 1.0
    if any(p in name for p in _COMMUNICATION_APPS):
        return 0.5
    return 0.0


class CategoryClassifier:
    """Assigns categories to applications and weights them for focus scoring.

    Args:
        cache_path: Optional JSON file persisting the user's explicit
            ``app → category`` overrides.
    """

    def __init__(self, cache_path: Path | str | None = None) -> None:
        self._cache_path = Path(cache_path).expanduser() if cache_path else None
        self._lock = threading.Lock()
        self._user_cache: dict[str, str] = self._load()

    def _load(self) -> dict[str, str]:
        if self._cache_path is None or not self._cache_path.exists():
            return {}
        try:
            data = json.loads(self._cache_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable category cache %s: %s", self._cache_path, exc)
            return {}
        if not isinstance(data, dict):
            return {}
        return {str(k).lower(): str(v) for k, v in data.items()}

    def _save(self) -> None:
        if self._cache_path is None:
            return
        self._cache_path.parent.mkdir(parents=True, exist_ok=True)
        self._cache_path.write_text(
            json.dumps(self._user_cache, indent=2, sort_keys=True), encoding="utf-8"
        )

    def categorize(self, app_name: str, window_title: str = "") -> str:
        """Return the category for *app_name* showing *window_title*."""
        app = app_name.strip().lower()
        title = window_title.lower()

        if app in _BROWSERS:
            for pattern, category in _TITLE_PATTERNS:
                if pattern in title:
                    return category

        with self._lock:
            cached = self._user_cache.get(app)
        if cached:
            return cached

        return _KNOWN_APPS.get(app, DEFAULT_CATEGORY)

    def remember(self, app_name: str, category: str) -> None:
        """Record an explicit category for *app_name* and persist it."""
        with self._lock:
            self._user_cache[app_name.strip().lower()] = category
            self._save()

    def forget(self, app_name: str) -> None:
        with self._lock:
            self._user_cache.pop(app_name.strip().lower(), None)
            self._save()

    def weight(self, app_name: str, category: str | None = None) -> float:
        """Focus weight of *app_name*: explicit category first, then the allow-list."""
        explicit = category_weight(category)
        if explicit is not None:
            return explicit
        return app_weight(app_name)
