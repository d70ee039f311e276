"""Keybindings for list, scroll and drop-down navigation."""

from __future__ import annotations

from typing import Literal

from ffsession.tui.keys import KeyId, matches_key

NavigationAction = Literal[
    "cursorUp",
    "cursorDown",
    "pageUp",
    "pageDown",
    "toggleSelect",
    "cancel",
]

KeybindingsConfig = dict[NavigationAction, KeyId | list[KeyId]]

DEFAULT_KEYBINDINGS: dict[NavigationAction, KeyId | list[KeyId]] = {
    "cursorUp": "up",
    "cursorDown": "down",
    "pageUp": "pageUp",
    "pageDown": "pageDown",
    "toggleSelect": ["enter", "space"],
    "cancel": "escape",
}


class KeybindingsManager:
    """Maps navigation actions to the keys that trigger them."""

    def __init__(self, config: KeybindingsConfig | None = None) -> None:
        self._action_to_keys: dict[NavigationAction, list[KeyId]] = {}
        self._build_maps(config or {})

    def _build_maps(self, config: KeybindingsConfig) -> None:
        self._action_to_keys.clear()
        for source in (DEFAULT_KEYBINDINGS, config):
            for action, keys in source.items():
                key_array = keys if isinstance(keys, list) else [keys]
                self._action_to_keys[action] = list(key_array)

    def matches(self, data: str, action: NavigationAction) -> bool:
        """Check if input matches a specific action."""
        return any(matches_key(data, key) for key in self._action_to_keys.get(action, []))

    def get_keys(self, action: NavigationAction) -> list[KeyId]:
        return self._action_to_keys.get(action, [])

    def set_config(self, config: KeybindingsConfig) -> None:
        self._build_maps(config)


_global_keybindings: KeybindingsManager | None = None


def get_keybindings() -> KeybindingsManager:
    global _global_keybindings
    if _global_keybindings is None:
        _global_keybindings = KeybindingsManager()
    return _global_keybindings


def set_keybindings(manager: KeybindingsManager | None) -> None:
    global _global_keybindings
    _global_keybindings = manager
