"""Screen formatting helpers and the colour scheme of the monitor."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_UPDATE_DELAY_MS = 100
"""Screen refresh interval used when no update rate is configured."""


@dataclass(frozen=True)
class Style:
    """A text appearance: an optional colour pair plus attributes."""

    pair: int | None = None
    bold: bool = False
    reverse: bool = False
    standout: bool = False


_COLOR_PAIRS: dict[int, tuple[str, str]] = {
    1: ("blue", "white"),
    2: ("black", "cyan"),
    3: ("cyan", "blue"),
    4: ("yellow", "red"),
    5: ("white", "red"),
    6: ("blue", "cyan"),
    7: ("blue", "white"),
    9: ("red", "white"),
    10: ("green", "blue"),
    11: ("cyan", "black"),
    12: ("red", "cyan"),
    14: ("yellow", "blue"),
    15: ("yellow", "black"),
    16: ("white", "cyan"),
    17: ("yellow", "cyan"),
    18: ("green", "black"),
    19: ("white", "blue"),
}


def color_pairs() -> dict[int, tuple[str, str]]:
    """Return the colour pairs as ``{number: (foreground, background)}``."""
    return dict(_COLOR_PAIRS)


def _pair(number: int, bold: bool = False) -> Style:
    return Style(pair=number, bold=bold)


_PLAIN = Style()
_BOLD = Style(bold=True)
_REVERSE = Style(reverse=True)


def standard_styles(color: bool) -> dict[str, Style]:
    """Return the named styles for a colour or a monochrome terminal."""
    if color:
        std = _pair(14, True)
        return {
            "std": std,
            "high": _pair(3, True),
            "box": _pair(3),
            "active": _pair(10, True),
            "bar_std": _pair(15, True),
            "bar_high": _pair(11, True),
            "bar_ptr": _pair(18, True),
            "desc": _pair(2),
            "dlg_text": _pair(2),
            "dlg_box": _pair(6),
            "dlg_high": _pair(12),
            "status_bar": std,
            "ipstat_label": _pair(2),
            "ipstat": _pair(12),
            "desk_text": _pair(7),
            "ptr": _pair(10, True),
            "field": _pair(1),
            "err_box": _pair(5, True),
            "err_text": _pair(4, True),
            "ospf": _pair(2),
            "udp": _pair(9),
            "igp": _pair(12),
            "igmp": _pair(10, True),
            "igrp": _pair(16, True),
            "arp": _pair(5, True),
            "gre": _pair(1),
            "unknown_ip": _pair(19, True),
            "icmpv6": _pair(19, True),
            "ipv6": _pair(19),
            "unknown": _pair(4, True),
        }
    return {
        "std": _REVERSE,
        "high": _REVERSE,
        "box": _REVERSE,
        "active": _BOLD,
        "bar_std": _PLAIN,
        "bar_high": _BOLD,
        "bar_ptr": _PLAIN,
        "desc": _BOLD,
        "dlg_text": _REVERSE,
        "dlg_box": _REVERSE,
        "dlg_high": _BOLD,
        "status_bar": _REVERSE,
        "ipstat_label": _REVERSE,
        "ipstat": Style(standout=True),
        "desk_text": _PLAIN,
        "ptr": _REVERSE,
        "field": _BOLD,
        "err_box": _BOLD,
        "err_text": _PLAIN,
        "ospf": _REVERSE,
        "udp": _BOLD,
        "igp": _REVERSE,
        "igmp": _REVERSE,
        "igrp": _REVERSE,
        "arp": _BOLD,
        "gre": _BOLD,
        "unknown_ip": _BOLD,
        "icmpv6": _REVERSE,
        "ipv6": _PLAIN,
        "unknown": _BOLD,
    }


def format_large_number(value: int) -> str:
    """Format a counter in nine columns, scaling large values with k/M/G/T."""
    if value < 100_000_000:
        return f"{value:9d}"
    if value < 1_000_000_000:
        return f"{value // 1000:8d}k"
    if value < 1_000_000_000_000:
        return f"{value // 1_000_000:8d}M"
    if value < 1_000_000_000_000_000:
        return f"{value // 1_000_000_000:8d}G"
    return f"{value // 1_000_000_000_000:8d}T"


def format_packet_drops(count: int) -> str:
    """Return the packet-drop counter label shown on window borders."""
    return f" Drops: {count:9d} "


def screen_update_rate(updrate: int) -> int:
    """Return the screen refresh interval in milliseconds.

    ``updrate`` is the configured interval in seconds; zero selects
    :data:`DEFAULT_UPDATE_DELAY_MS`.
    """
    if updrate == 0:
        return DEFAULT_UPDATE_DELAY_MS
    return updrate * 1000


def next_screen_update(now: float, updrate: int) -> float:
    """Return the time, in seconds, at which the screen is next redrawn."""
    return now + screen_update_rate(updrate) / 1000