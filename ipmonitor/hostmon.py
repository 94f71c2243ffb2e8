"""LAN station monitor: per hardware address traffic counts and rates."""

from __future__ import annotations

import time
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import TextIO

from ipmonitor.detstats import RateMeter, format_rate

ETH_ALEN = 6

SCROLLUP = 0
"""Scroll towards the end of the table."""
SCROLLDOWN = 1
"""Scroll towards the start of the table."""

ROWS_PER_HOST = 2
"""Each host takes a description row and a figures row on screen."""


class LinkType(IntEnum):
    """Link-layer hardware types whose stations are monitored."""

    ETHER = 1
    FDDI = 774

    @property
    def label(self) -> str:
        """Name of the link type as shown on screen and in the log."""
        return "Ethernet" if self is LinkType.ETHER else "FDDI"


class SortKey(Enum):
    """Sort criteria of the host table, keyed by their command letter."""

    IN_PACKETS = "P"
    IN_IP = "I"
    IN_BYTES = "B"
    OUT_PACKETS = "K"
    OUT_IP = "O"
    OUT_BYTES = "Y"


_SORT_FIELDS = {
    SortKey.IN_PACKETS: "inpcount",
    SortKey.IN_IP: "inippcount",
    SortKey.IN_BYTES: "inbcount",
    SortKey.OUT_PACKETS: "outpcount",
    SortKey.OUT_IP: "outippcount",
    SortKey.OUT_BYTES: "outbcount",
}


def format_mac(addr: bytes) -> str:
    """Return a six-byte hardware address as lower-case colon-separated hex."""
    if len(addr) != ETH_ALEN:
        raise ValueError(f"hardware address must be {ETH_ALEN} bytes, got {len(addr)}")
    return ":".join(f"{b:02x}" for b in addr)


@dataclass
class HostEntry:
    """One station seen on the LAN, with its traffic counts."""

    mac: bytes
    linktype: LinkType
    ifname: str = ""
    desc: str = ""
    inpcount: int = 0
    inbcount: int = 0
    inippcount: int = 0
    inspanbr: int = 0
    outpcount: int = 0
    outbcount: int = 0
    outippcount: int = 0
    outspanbr: int = 0
    inrate: RateMeter = field(default_factory=RateMeter)
    outrate: RateMeter = field(default_factory=RateMeter)

    @property
    def ascaddr(self) -> str:
        """The hardware address in text form."""
        return format_mac(self.mac)

    @property
    def withdesc(self) -> bool:
        """Tell whether the station has a description."""
        return bool(self.desc)

    def update(self, length: int, is_ip: bool, outgoing: bool) -> None:
        """Account one packet sent (``outgoing``) or received by the station."""
        if outgoing:
            self.outpcount += 1
            self.outbcount += length
            self.outspanbr += length
            if is_ip:
                self.outippcount += 1
        else:
            self.inpcount += 1
            self.inbcount += length
            self.inspanbr += length
            if is_ip:
                self.inippcount += 1

    def description_line(self) -> str:
        """Return the text of the station's description row."""
        text = f"{self.linktype.label} HW addr: {self.ascaddr}"
        if self.withdesc:
            text += f" ({self.desc})"
        return f"{text} on {self.ifname}"


class HostTable:
    """The stations seen so far, in display order, with a scroll window."""

    def __init__(
        self,
        height: int = 20,
        descriptions: Mapping[int, Mapping[str, str]] | None = None,
    ) -> None:
        if height < 1:
            raise ValueError("the table window needs at least one row")
        self.height = height
        self.entries: list[HostEntry] = []
        self.first_row = 0
        self._descriptions: dict[int, dict[str, str]] = {
            int(linktype): {mac.lower(): desc for mac, desc in table.items()}
            for linktype, table in (descriptions or {}).items()
        }

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[HostEntry]:
        return iter(self.entries)

    @property
    def total_rows(self) -> int:
        """Number of screen rows the whole table takes."""
        return ROWS_PER_HOST * len(self.entries)

    @property
    def last_row(self) -> int:
        """Index of the last visible row, or -1 for an empty table."""
        return min(self.first_row + self.height, self.total_rows) - 1

    def visible_entries(self) -> list[HostEntry]:
        """Return the hosts with at least one row inside the window."""
        if not self.entries:
            return []
        first = self.first_row // ROWS_PER_HOST
        last = self.last_row // ROWS_PER_HOST
        return self.entries[first : last + 1]

    def lookup(self, linktype: int, mac: bytes) -> HostEntry | None:
        """Return the entry of a station, or ``None`` when not seen yet."""
        for entry in self.entries:
            if entry.linktype == linktype and entry.mac == mac:
                return entry
        return None

    def add(self, linktype: int, ifname: str, mac: bytes) -> HostEntry:
        """Add a new station at the end of the table and return it."""
        kind = LinkType(linktype)
        mac = bytes(mac)
        ascaddr = format_mac(mac)
        desc = self._descriptions.get(int(kind), {}).get(ascaddr, "")
        entry = HostEntry(mac=mac, linktype=kind, ifname=ifname, desc=desc)
        self.entries.append(entry)
        return entry

    def process(
        self,
        linktype: int,
        ifname: str,
        src: bytes,
        dst: bytes,
        length: int,
        is_ip: bool,
    ) -> bool:
        """Account a packet for its sender and its receiver.

        Packets of unknown link types are ignored and ``False`` is returned.
        """
        try:
            kind = LinkType(linktype)
        except ValueError:
            return False
        sender = self.lookup(kind, src) or self.add(kind, ifname, src)
        sender.update(length, is_ip, outgoing=True)
        receiver = self.lookup(kind, dst) or self.add(kind, ifname, dst)
        receiver.update(length, is_ip, outgoing=False)
        return True

    def update_rates(self, msecs: int) -> None:
        """Fold the bytes counted since the last update into the rates."""
        for entry in self.entries:
            entry.inrate.add(entry.inspanbr, msecs)
            entry.inspanbr = 0
            entry.outrate.add(entry.outspanbr, msecs)
            entry.outspanbr = 0

    def sort(self, key: SortKey | str) -> bool:
        """Sort the stations by a counter, largest first.

        ``key`` may be a :class:`SortKey` or its command letter in either
        case; other letters leave the table unchanged and return ``False``.
        The window moves back to the top after sorting.
        """
        if not self.entries:
            return False
        if not isinstance(key, SortKey):
            try:
                key = SortKey(str(key).upper())
            except ValueError:
                return False
        attr = _SORT_FIELDS[key]
        self.entries.sort(key=lambda entry: getattr(entry, attr), reverse=True)
        self.first_row = 0
        return True

    def scroll(self, direction: int, lines: int) -> None:
        """Move the window by up to ``lines`` rows, stopping at either end."""
        if not self.entries or lines < 1:
            return
        if direction == SCROLLUP:
            room = self.total_rows - 1 - self.last_row
            self.first_row += min(lines, max(room, 0))
        elif direction == SCROLLDOWN:
            self.first_row -= min(lines, self.first_row)
        else:
            raise ValueError(f"unknown scroll direction: {direction}")

    def write_log(self, fp: TextIO, nsecs: int, now: float | None = None) -> None:
        """Write a LAN traffic report covering ``nsecs`` seconds to ``fp``."""
        stamp = time.ctime(time.time() if now is None else now)
        fp.write(f"\n*** LAN traffic log, generated {stamp}\n\n")

        for entry in self.entries:
            line = f"\n{entry.linktype.label} address: {entry.ascaddr}"
            if entry.withdesc:
                line += f" ({entry.desc})"
            fp.write(line + "\n")

            fp.write(
                f"\tIncoming total {entry.inpcount} packets, {entry.inbcount} bytes; "
                f"{entry.inippcount} IP packets\n"
            )
            fp.write(
                f"\tOutgoing total {entry.outpcount} packets, {entry.outbcount} bytes; "
                f"{entry.outippcount} IP packets\n"
            )
            in_avg = entry.inbcount // nsecs if nsecs else 0
            out_avg = entry.outbcount // nsecs if nsecs else 0
            fp.write(
                f"\tAverage rates: {format_rate(in_avg)} incoming, "
                f"{format_rate(out_avg)} outgoing\n"
            )
            if nsecs > 5:
                fp.write(
                    f"\tLast 5-second rates: {format_rate(entry.inrate.average())} incoming, "
                    f"{format_rate(entry.outrate.average())} outgoing\n"
                )

        fp.write(f"\nRunning time: {nsecs} seconds\n")
        fp.flush()