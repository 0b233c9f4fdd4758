"""Persisted expansion state, one token list per workspace key.

Malformed or missing state reads as empty.
"""

from __future__ import annotations

import json
from pathlib import Path

from platformdirs import user_state_dir

from ..config import APP_NAME

STATE_FILENAME = "expanded.json"
STATE_PATH = Path(user_state_dir(APP_NAME, appauthor=False)) / STATE_FILENAME


def _load_state() -> dict[str, object]:
    try:
        data = json.loads(STATE_PATH.read_text(encoding="utf-8"))
    except Exception:
        return {}
    return data if isinstance(data, dict) else {}


def load_expanded_tokens(key: str) -> list[str]:
    """Return stored tokens for ``key``, dropping non-string and duplicate entries."""
    raw = _load_state().get(key)
    if not isinstance(raw, list):
        return []
    tokens: list[str] = []
    seen: set[str] = set()
    for token in raw:
        if isinstance(token, str) and token and token not in seen:
            seen.add(token)
            tokens.append(token)
    return tokens


def save_expanded_tokens(key: str, tokens: list[str]) -> None:
    """Persist ``tokens`` for ``key``; filesystem errors are ignored."""
    state = _load_state()
    if tokens:
        state[key] = list(tokens)
    else:
        state.pop(key, None)
    try:
        STATE_PATH.parent.mkdir(parents=True, exist_ok=True)
        STATE_PATH.write_text(json.dumps(state, indent=2) + "\n", encoding="utf-8")
    except Exception:
        pass
