"""The set of active display filters and its persistence."""

from __future__ import annotations

import json
from dataclasses import dataclass, field

from ipmonitor.ipfilter import FilterList

ETH_P_ARP = 0x0806
ETH_P_RARP = 0x8035

ROW_IP = 1
ROW_ARP = 2
ROW_RARP = 3
ROW_NONIP = 4


@dataclass
class FilterState:
    """Which packet kinds are shown, and the IP filter currently applied."""

    filename: str = ""
    filtercode: int = 0
    filterlist: FilterList = field(default_factory=FilterList)
    arp: bool = False
    rarp: bool = False
    nonip: bool = False

    def nonip_filter(self, protocol: int) -> bool:
        """Tell whether a non-IP packet with this link protocol is shown."""
        if protocol == ETH_P_ARP:
            return self.arp
        if protocol == ETH_P_RARP:
            return self.rarp
        return self.nonip

    def toggle(self, row: int) -> None:
        """Flip the visibility switch of a filter menu row.

        Rows other than ARP, RARP and non-IP are left unchanged; the IP
        filter is applied through its own menu.
        """
        if row == ROW_ARP:
            self.arp = not self.arp
        elif row == ROW_RARP:
            self.rarp = not self.rarp
        elif row == ROW_NONIP:
            self.nonip = not self.nonip

    def status_line(self, row: int) -> str:
        """Return the status text shown beside a filter menu row."""
        if row == ROW_IP:
            return "No IP filter active" if self.filtercode == 0 else "IP filter active   "
        if row == ROW_ARP:
            return "ARP visible    " if self.arp else "ARP not visible"
        if row == ROW_RARP:
            return "RARP visible    " if self.rarp else "RARP not visible"
        if row == ROW_NONIP:
            return "Non-IP visible    " if self.nonip else "Non-IP not visible"
        return ""

    def save(self, path: str) -> None:
        """Write the filter state to ``path``."""
        data = {
            "filename": self.filename,
            "filtercode": self.filtercode,
            "arp": self.arp,
            "rarp": self.rarp,
            "nonip": self.nonip,
        }
        with open(path, "w", encoding="utf-8") as fp:
            json.dump(data, fp)

    @classmethod
    def load(cls, path: str) -> FilterState:
        """Read the filter state from ``path``.

        A missing or unreadable file gives the default state. The IP filter
        named by :attr:`filename` is not loaded here; the filter list starts
        empty.
        """
        try:
            with open(path, encoding="utf-8") as fp:
                data = json.load(fp)
        except (OSError, ValueError):
            return cls()
        if not isinstance(data, dict):
            return cls()
        try:
            return cls(
                filename=str(data.get("filename", "")),
                filtercode=int(data.get("filtercode", 0)),
                arp=bool(data.get("arp", False)),
                rarp=bool(data.get("rarp", False)),
                nonip=bool(data.get("nonip", False)),
            )
        except (TypeError, ValueError):
            return cls()