from __future__ import annotations

import re
from typing import Iterable

ENTER = "Enter"
ESCAPE = "Escape"

# Friendly spellings mapped onto tmux key names. Anything not listed here is
# handed to tmux unchanged, which already understands Enter, Tab, Escape,
# Space, BSpace, DC, Up/Down/Left/Right, Home, End, PPage, NPage, C-x, M-x
# and F1-F12. Short tokens such as "del" or "cr" are text, not keys.
KEY_ALIASES: dict[str, str] = {
    "return": "Enter",
    "enter": "Enter",
    "esc": "Escape",
    "escape": "Escape",
    "backspace": "BSpace",
    "delete": "DC",
    "insert": "IC",
    "pageup": "PPage",
    "pagedown": "NPage",
    "space": "Space",
    "tab": "Tab",
    "up": "Up",
    "down": "Down",
    "left": "Left",
    "right": "Right",
    "home": "Home",
    "end": "End",
}

# Vim key notation, only recognised inside angle brackets (<CR>, <BS>, <lt>).
VIM_KEY_NAMES: dict[str, str] = {
    **KEY_ALIASES,
    "cr": "Enter",
    "nl": "Enter",
    "bs": "BSpace",
    "del": "DC",
    "ins": "IC",
    "pgup": "PPage",
    "pgdn": "NPage",
    "lt": "<",
}

_MODIFIERS = {"ctrl": "C", "control": "C", "c": "C", "alt": "M", "meta": "M", "m": "M", "shift": "S", "s": "S"}
_COMBO_RE = re.compile(r"^(?P<mod>ctrl|control|alt|meta|shift)[-+](?P<key>.+)$", re.IGNORECASE)
_VIM_RE = re.compile(r"^<(?P<body>[^<>]+)>$")
_VIM_COMBO_RE = re.compile(r"^(?P<mod>[csm])-(?P<key>.+)$", re.IGNORECASE)
_FUNCTION_RE = re.compile(r"^f(?P<num>[1-9]|1[0-2])$", re.IGNORECASE)


def normalize_key(token: str) -> str:
    """Translate a single key token into tmux key-name syntax.

    Single characters and names tmux already knows pass through verbatim.
    Bare tokens are rewritten only when they spell a key out in full (see
    :data:`KEY_ALIASES`), plus ``Ctrl-x``/``ctrl+x``, ``Alt-x`` and ``f1``-``f12``.
    Vim abbreviations such as ``<CR>``, ``<BS>``, ``<Del>``, ``<lt>`` and
    ``<C-w>`` are accepted inside angle brackets only.
    """
    if len(token) <= 1:
        return token

    vim = _VIM_RE.match(token)
    if vim:
        body = vim.group("body")
        combo = _VIM_COMBO_RE.match(body)
        if combo:
            key = _modified_key(combo.group("key"), VIM_KEY_NAMES)
            return f"{_MODIFIERS[combo.group('mod').lower()]}-{key}"
        return _named_key(body, VIM_KEY_NAMES, default=token)

    combo = _COMBO_RE.match(token)
    if combo:
        key = _modified_key(combo.group("key"), KEY_ALIASES)
        return f"{_MODIFIERS[combo.group('mod').lower()]}-{key}"

    return _named_key(token, KEY_ALIASES, default=token)


def normalize_keys(tokens: Iterable[str]) -> list[str]:
    return [normalize_key(token) for token in tokens]


def _named_key(name: str, aliases: dict[str, str], *, default: str) -> str:
    alias = aliases.get(name.lower())
    if alias is not None:
        return alias
    function = _FUNCTION_RE.match(name)
    if function:
        return f"F{function.group('num')}"
    return default


def _modified_key(key: str, aliases: dict[str, str]) -> str:
    if len(key) == 1:
        return key.lower()
    return _named_key(key, aliases, default=key)
