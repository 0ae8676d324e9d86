"""Default text source: short, harmless snippets chosen by application category."""

from __future__ import annotations

import random
from typing import Dict, Optional, Sequence, Tuple


TERMINAL_COMMANDS: Tuple[str, ...] = (
    "git status", "git log --oneline -5", "ls -la", "npm run test",
    "docker ps", "python -m pytest -q", "git diff --stat", "make lint",
)

CODE_SNIPPETS: Tuple[str, ...] = (
    "def load_settings(path):", "return self._config", "from typing import Optional",
    "async function fetchData() {", "const response = await fetch(", "if (!result) {",
    "class ReportBuilder:", "for item in items:", "useEffect(() => {",
    "raise ValueError(", "interface UserDto {", "self.assertEqual(",
)

BROWSER_SEARCHES: Tuple[str, ...] = (
    "python dataclasses tutorial", "tkinter after_cancel", "pytest fixtures scope",
    "css grid layout", "docker compose healthcheck", "git rebase onto",
)

MESSAGE_TEXT: Tuple[str, ...] = (
    "pushed the latest changes", "will take a look after lunch",
    "tests are green now", "can you review my PR?", "deploy finished",
)

DOCUMENT_TEXT: Tuple[str, ...] = (
    "meeting notes", "open questions for the next sprint", "release checklist",
    "ideas for the onboarding docs", "action items",
)

SEARCH_TERMS: Tuple[str, ...] = (
    "calculator", "settings", "activity monitor", "notes", "terminal", "calendar",
)

CATEGORY_APPS: Dict[str, Tuple[str, ...]] = {
    "terminal": ("Terminal", "iTerm", "Console", "PowerShell", "cmd"),
    "code": ("Code", "Xcode", "Sublime", "PyCharm", "IntelliJ", "Atom"),
    "browser": ("Safari", "Chrome", "Firefox", "Edge"),
    "message": ("Slack", "Mail", "Messages", "Teams", "Outlook"),
    "document": ("Notes", "TextEdit", "Pages", "Word", "Notepad"),
}

CATEGORY_TEXT: Dict[str, Tuple[str, ...]] = {
    "terminal": TERMINAL_COMMANDS,
    "code": CODE_SNIPPETS,
    "browser": BROWSER_SEARCHES,
    "message": MESSAGE_TEXT,
    "document": DOCUMENT_TEXT,
}


def category_for_app(app_name: str) -> str:
    """Category of an application name; unknown apps count as code editors."""
    lowered = (app_name or "").lower()
    for category, names in CATEGORY_APPS.items():
        if any(name.lower() in lowered for name in names):
            return category
    return "code"


class CorpusTextSource:
    """TextSource backed by the built-in corpora above."""

    def __init__(
        self,
        rng: Optional[random.Random] = None,
        corpora: Optional[Dict[str, Sequence[str]]] = None,
        search_terms: Sequence[str] = SEARCH_TERMS,
    ) -> None:
        self._rng = rng or random.Random()
        self._corpora = dict(corpora or CATEGORY_TEXT)
        self._search_terms = tuple(search_terms)

    def text_for(self, app_name: str) -> Optional[str]:
        texts = self._corpora.get(category_for_app(app_name))
        if not texts:
            return None
        return self._rng.choice(list(texts))

    def search_term(self) -> str:
        if not self._search_terms:
            return ""
        return self._rng.choice(self._search_terms)
