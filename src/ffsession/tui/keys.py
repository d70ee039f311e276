"""Keyboard input parsing and matching.

Understands the legacy xterm sequences, xterm's modified CSI forms and the
kitty keyboard protocol (``CSI <codepoint> ; <modifier> u``). Raw input is
turned into a key identifier such as ``"up"``, ``"ctrl+c"`` or
``"shift+tab"`` which ``matches_key`` compares against configured bindings.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

# ---------------------------------------------------------------------------
# Type alias
# ---------------------------------------------------------------------------

KeyId = str


class Key:
    """Named key constants."""

    escape = "escape"
    enter = "enter"
    tab = "tab"
    space = "space"
    backspace = "backspace"
    delete = "delete"
    insert = "insert"
    home = "home"
    end = "end"
    page_up = "pageUp"
    page_down = "pageDown"
    up = "up"
    down = "down"
    left = "left"
    right = "right"

    @staticmethod
    def ctrl(key: str) -> str:
        return f"ctrl+{key}"

    @staticmethod
    def shift(key: str) -> str:
        return f"shift+{key}"

    @staticmethod
    def alt(key: str) -> str:
        return f"alt+{key}"


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

MODIFIERS = {"shift": 1, "alt": 2, "ctrl": 4}
# Caps lock and num lock bits reported by kitty; never part of a binding.
LOCK_MASK = 64 + 128

_MODIFIER_ORDER = ("ctrl", "shift", "alt")
_KEY_ALIASES = {"esc": "escape", "return": "enter"}

# Kitty CSI-u codepoints of non-printable keys.
_CODEPOINT_KEYS: dict[int, str] = {
    27: "escape",
    13: "enter",
    57414: "enter",  # keypad enter
    9: "tab",
    32: "space",
    127: "backspace",
    8: "backspace",
}

# Plain (unmodified) legacy sequences.
_LEGACY_KEYS: dict[str, str] = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[7~": "home",
    "\x1b[4~": "end",
    "\x1b[8~": "end",
    "\x1b[2~": "insert",
    "\x1b[3~": "delete",
    "\x1b[5~": "pageUp",
    "\x1b[6~": "pageDown",
    "\x1b[Z": "shift+tab",
}

_CSI_LETTER_KEYS = {
    "A": "up",
    "B": "down",
    "C": "right",
    "D": "left",
    "H": "home",
    "F": "end",
}

_CSI_TILDE_KEYS = {
    1: "home",
    2: "insert",
    3: "delete",
    4: "end",
    5: "pageUp",
    6: "pageDown",
    7: "home",
    8: "end",
}

# ---------------------------------------------------------------------------
# Regex patterns
# ---------------------------------------------------------------------------

# \x1b[<codepoint>(:<shifted>(:<base>))?(;<modifier>(:<event>))?u
_KITTY_CSI_U_RE = re.compile(
    r"^\x1b\[(\d+)(?::(\d*)(?::(\d+))?)?(?:;(\d+)(?::(\d+))?)?u$"
)
# \x1b[1;<modifier>(:<event>)?[ABCDHF]
_MODIFIED_LETTER_RE = re.compile(r"^\x1b\[1;(\d+)(?::(\d+))?([ABCDHF])$")
# \x1b[<number>;<modifier>(:<event>)?~
_MODIFIED_TILDE_RE = re.compile(r"^\x1b\[(\d+);(\d+)(?::(\d+))?~$")
# xterm modifyOtherKeys: \x1b[27;<modifier>;<keycode>~
_MODIFY_OTHER_KEYS_RE = re.compile(r"^\x1b\[27;(\d+);(\d+)~$")

_BRACKETED_PASTE_RE = re.compile(r"\x1b\[200~")
_RELEASE_RE = re.compile(r"(?::3u|;[^:]*:3~|;[^:]*:3[ABCDHF])")


@dataclass
class ParsedKey:
    name: str
    modifier: int = 0
    event_type: int = 1  # 1 = press, 2 = repeat, 3 = release


def is_key_release(data: str) -> bool:
    """Check if data is a kitty key release report."""
    if _BRACKETED_PASTE_RE.search(data):
        return False
    return bool(_RELEASE_RE.search(data))


def _modifier_bits(raw: str | None) -> int:
    if not raw:
        return 0
    return (int(raw) - 1) & ~LOCK_MASK


def _event_type(raw: str | None) -> int:
    return int(raw) if raw else 1


def _name_for_codepoint(cp: int) -> str | None:
    name = _CODEPOINT_KEYS.get(cp)
    if name is not None:
        return name
    if cp > 0:
        ch = chr(cp)
        if ch.isprintable():
            return ch.lower()
    return None


def _parse_sequence(data: str) -> ParsedKey | None:  # noqa: C901
    m = _KITTY_CSI_U_RE.match(data)
    if m:
        name = _name_for_codepoint(int(m.group(1)))
        if name is None:
            return None
        return ParsedKey(name, _modifier_bits(m.group(4)), _event_type(m.group(5)))

    m = _MODIFIED_LETTER_RE.match(data)
    if m:
        return ParsedKey(
            _CSI_LETTER_KEYS[m.group(3)],
            _modifier_bits(m.group(1)),
            _event_type(m.group(2)),
        )

    m = _MODIFY_OTHER_KEYS_RE.match(data)
    if m:
        name = _name_for_codepoint(int(m.group(2)))
        if name is None:
            return None
        return ParsedKey(name, _modifier_bits(m.group(1)))

    m = _MODIFIED_TILDE_RE.match(data)
    if m:
        name = _CSI_TILDE_KEYS.get(int(m.group(1)))
        if name is None:
            return None
        return ParsedKey(name, _modifier_bits(m.group(2)), _event_type(m.group(3)))

    legacy = _LEGACY_KEYS.get(data)
    if legacy is not None:
        if legacy == "shift+tab":
            return ParsedKey("tab", MODIFIERS["shift"])
        return ParsedKey(legacy)

    if data == "\x1b":
        return ParsedKey("escape")
    if data in ("\r", "\n"):
        return ParsedKey("enter")
    if data == "\t":
        return ParsedKey("tab")
    if data == " ":
        return ParsedKey("space")
    if data in ("\x7f", "\x08"):
        return ParsedKey("backspace")
    if data == "\x00":
        return ParsedKey("space", MODIFIERS["ctrl"])

    # Ctrl + letter (0x01 - 0x1a)
    if len(data) == 1 and 1 <= ord(data) <= 26:
        return ParsedKey(chr(ord(data) + ord("a") - 1), MODIFIERS["ctrl"])

    # Alt + key (ESC prefix)
    if len(data) == 2 and data[0] == "\x1b":
        inner = _parse_sequence(data[1])
        if inner is not None:
            inner.modifier |= MODIFIERS["alt"]
            return inner
        return None

    if len(data) == 1 and data.isprintable():
        if data.isupper():
            return ParsedKey(data.lower(), MODIFIERS["shift"])
        return ParsedKey(data)

    return None


def _format(parsed: ParsedKey) -> KeyId:
    prefix = "".join(
        f"{mod}+" for mod in _MODIFIER_ORDER if parsed.modifier & MODIFIERS[mod]
    )
    return prefix + parsed.name


def parse_key(data: str) -> KeyId | None:
    """Parse raw terminal input and return the key identifier, or ``None``.

    Key release reports parse to ``None``. Shifted printable characters are
    reported by their lowercase name with a ``shift+`` prefix.
    """
    if not data:
        return None
    parsed = _parse_sequence(data)
    if parsed is None or parsed.event_type == 3:
        return None
    return _format(parsed)


def normalize_key_id(key_id: KeyId) -> KeyId:
    """Canonical form of a key identifier (modifier order, aliases)."""
    parts = key_id.split("+")
    # "ctrl++" style bindings name the plus key itself.
    if key_id.endswith("++"):
        parts = parts[:-2] + ["+"]
    name = parts[-1]
    mods = {p.lower() for p in parts[:-1]}
    name = _KEY_ALIASES.get(name.lower(), name)
    if len(name) == 1:
        if name.isupper():
            mods.add("shift")
            name = name.lower()
        elif name == " ":
            name = "space"
    prefix = "".join(f"{mod}+" for mod in _MODIFIER_ORDER if mod in mods)
    return prefix + name


def matches_key(data: str, key_id: KeyId) -> bool:
    """Check whether raw input *data* is the key named by *key_id*."""
    parsed = parse_key(data)
    if parsed is None:
        return False
    return parsed == normalize_key_id(key_id)
