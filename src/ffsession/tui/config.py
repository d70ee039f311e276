"""Tunable constants for the terminal engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Literal

ScrollbarMode = Literal["always", "auto", "auto-invisible", "never"]

ENV_PREFIX = "FFSESSION_TUI_"


@dataclass
class TuiConfig:
    """Engine configuration.

    Every field can be overridden from the environment with
    ``FFSESSION_TUI_<FIELD_NAME_UPPERCASE>``.
    """

    # Text longer than this is virtualized instead of rendered directly.
    virtualize_threshold: int = 50_000
    chunk_rows: int = 100
    draw_margin: int = 5

    # Seconds between periodic re-measurements.
    scroll_recheck_interval: float = 0.5
    width_recheck_interval: float = 1.0
    null_event_delay: float = 0.1

    show_scrollbar: ScrollbarMode = "auto"
    mouse: bool = True
    alternate_screen: bool = True
    show_hardware_cursor: bool = False
    clear_on_shrink: bool = False

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> TuiConfig:
        env = os.environ if environ is None else environ
        config = cls()
        for f in fields(cls):
            raw = env.get(ENV_PREFIX + f.name.upper())
            if raw is None or raw == "":
                continue
            current = getattr(config, f.name)
            try:
                if isinstance(current, bool):
                    value: object = raw.strip().lower() in ("1", "true", "yes", "on")
                elif isinstance(current, int):
                    value = int(raw)
                elif isinstance(current, float):
                    value = float(raw)
                else:
                    value = raw.strip()
            except ValueError:
                continue
            setattr(config, f.name, value)
        if config.show_scrollbar not in ("always", "auto", "auto-invisible", "never"):
            config.show_scrollbar = "auto"
        return config


_config: TuiConfig | None = None


def get_config() -> TuiConfig:
    global _config
    if _config is None:
        _config = TuiConfig.from_env()
    return _config


def set_config(config: TuiConfig | None) -> None:
    global _config
    _config = config
