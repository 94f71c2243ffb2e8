"""IP packet filter definitions and the matching of packets against them."""

from __future__ import annotations

import re
import socket
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum

from ipmonitor.cidr import INVALID_MASKBITS, get_quad_mask, split_address

WILDCARD = "0.0.0.0"
"""Address and mask text that matches every address."""

PROTOLIST_MAX = 60
MAX_PROTOCOL = 255
ALL_IP = "all"

PROTOCOL_NUMBERS: dict[str, int] = {
    "icmp": 1,
    "igmp": 2,
    "tcp": 6,
    "igp": 9,
    "udp": 17,
    "gre": 47,
    "ipsec_esp": 50,
    "ipsec_ah": 51,
    "igrp": 88,
    "ospf": 89,
    "l2tp": 115,
}
"""IP protocol numbers of the protocols that can be chosen by name."""

_IPPROTO_TCP = PROTOCOL_NUMBERS["tcp"]
_IPPROTO_UDP = PROTOCOL_NUMBERS["udp"]
_PORT = re.compile(r"\s*\+?(\d+)\Z")
_RANGE = re.compile(r"\s*(\d+)\s*(?:-\s*(\d+)\s*)?\Z")
_ALL_ONES = 0xFFFFFFFF


class MatchOpposite(Enum):
    """How the reverse direction of a filter entry is considered."""

    USECONFIG = "useconfig"
    ALWAYS = "always"


@dataclass(frozen=True)
class HostParams:
    """The parameters of one filter entry as entered by the user."""

    s_fqdn: str = WILDCARD
    s_mask: str = WILDCARD
    sport1: int = 0
    sport2: int = 0
    d_fqdn: str = WILDCARD
    d_mask: str = WILDCARD
    dport1: int = 0
    dport2: int = 0
    protocols: frozenset[int] = frozenset()
    all_ip: bool = False
    protolist: str = ""
    reverse: str = "I"
    match_opposite: str = "N"

    def matches_protocol(self, protocol: int) -> bool:
        """Tell whether the entry selects the given IP protocol."""
        return self.all_ip or protocol in self.protocols


def parse_port(text: str) -> int:
    """Return the port number in ``text``, or 0 when it is not a valid port."""
    match = _PORT.match(text)
    if match is None:
        return 0
    value = int(match.group(1))
    return value if value <= 65535 else 0


def _parse_protocol_ranges(text: str) -> frozenset[int]:
    """Parse a list such as ``"8, 18-20, 69"`` into protocol numbers."""
    if not text.strip():
        return frozenset()
    numbers: set[int] = set()
    for token in text.split(","):
        match = _RANGE.match(token)
        if match is None:
            raise ValueError(f'Invalid protocol input at or near token "{token.strip()}"')
        low = int(match.group(1))
        high = int(match.group(2)) if match.group(2) is not None else 0
        if low > MAX_PROTOCOL or high > MAX_PROTOCOL or (high and high < low):
            raise ValueError(f'Invalid protocol input at or near token "{token.strip()}"')
        numbers.update(range(low, high + 1) if high else (low,))
    return frozenset(numbers)


def _address_and_mask(address: str, mask: str) -> tuple[str, str]:
    fqdn = address or WILDCARD
    maskbits = 0
    if "/" in fqdn:
        fqdn, maskbits = split_address(fqdn)
    if mask:
        return fqdn, mask
    if maskbits > 32 or maskbits == INVALID_MASKBITS:
        return fqdn, WILDCARD
    return fqdn, get_quad_mask(maskbits)


def make_host_params(
    saddr: str = "",
    smask: str = "",
    sport1: str = "",
    sport2: str = "",
    daddr: str = "",
    dmask: str = "",
    dport1: str = "",
    dport2: str = "",
    protocols: Iterable[str] = (),
    protolist: str = "",
    inex: str = "I",
    matchop: str = "N",
) -> HostParams:
    """Build filter parameters from the text of the filter entry form.

    Empty addresses become the wildcard; an address written as
    ``address/bits`` supplies the mask when the mask is left empty.
    ``protocols`` names protocols from :data:`PROTOCOL_NUMBERS` or
    :data:`ALL_IP`; ``protolist`` adds numbers and ranges. An invalid
    protocol list raises :class:`ValueError`.
    """
    s_fqdn, s_mask = _address_and_mask(saddr, smask)
    d_fqdn, d_mask = _address_and_mask(daddr, dmask)

    all_ip = False
    chosen: set[int] = set()
    for name in protocols:
        key = name.lower()
        if key == ALL_IP:
            all_ip = True
        elif key in PROTOCOL_NUMBERS:
            chosen.add(PROTOCOL_NUMBERS[key])
        else:
            raise ValueError(f"unknown protocol: {name}")

    kept_list = protolist[:PROTOLIST_MAX]
    chosen |= _parse_protocol_ranges(protolist)

    reverse = inex[:1].upper()
    if reverse != "E":
        reverse = "I"
    match_opposite = "Y" if matchop[:1].upper() == "Y" else "N"

    return HostParams(
        s_fqdn=s_fqdn,
        s_mask=s_mask,
        sport1=parse_port(str(sport1)),
        sport2=parse_port(str(sport2)),
        d_fqdn=d_fqdn,
        d_mask=d_mask,
        dport1=parse_port(str(dport1)),
        dport2=parse_port(str(dport2)),
        protocols=frozenset(chosen),
        all_ip=all_ip,
        protolist=kept_list,
        reverse=reverse,
        match_opposite=match_opposite,
    )


def addr_in_net(addr: int, net: int, mask: int) -> bool:
    """Tell whether ``addr`` lies in network ``net`` under ``mask``."""
    return (addr & mask) == (net & mask)


def port_in_range(port: int, port1: int, port2: int) -> bool:
    """Tell whether ``port`` matches a single port or an inclusive range.

    With no upper bound, a lower bound of 0 matches every port.
    """
    if port2 == 0:
        return port == port1 or port1 == 0
    return port1 <= port <= port2


def _resolve_address(name: str) -> int:
    try:
        packed = socket.inet_aton(name)
    except OSError:
        try:
            packed = socket.inet_aton(socket.gethostbyname(name))
        except OSError as exc:
            raise ValueError(f"Unable to resolve {name}") from exc
    return int.from_bytes(packed, "big")


def _mask_value(text: str) -> int:
    try:
        return int.from_bytes(socket.inet_aton(text), "big")
    except OSError:
        return _ALL_ONES


@dataclass
class FilterEntry:
    """A filter entry with its addresses and masks resolved to integers."""

    params: HostParams
    saddr: int = 0
    daddr: int = 0
    smask: int = 0
    dmask: int = 0

    def _forward(self, saddr: int, daddr: int) -> bool:
        return addr_in_net(saddr, self.saddr, self.smask) and addr_in_net(
            daddr, self.daddr, self.dmask
        )

    def _backward(self, saddr: int, daddr: int) -> bool:
        return addr_in_net(saddr, self.daddr, self.dmask) and addr_in_net(
            daddr, self.saddr, self.smask
        )


@dataclass
class FilterList:
    """An ordered list of filter entries; the first matching entry decides."""

    entries: list[FilterEntry] = field(default_factory=list)
    resolver: Callable[[str], int] = _resolve_address

    def _make_entry(self, params: HostParams) -> FilterEntry:
        return FilterEntry(
            params=params,
            saddr=self.resolver(params.s_fqdn),
            daddr=self.resolver(params.d_fqdn),
            smask=_mask_value(params.s_mask),
            dmask=_mask_value(params.d_mask),
        )

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[FilterEntry]:
        return iter(self.entries)

    def __getitem__(self, index: int) -> FilterEntry:
        return self.entries[index]

    def append(self, params: HostParams) -> FilterEntry:
        """Add an entry at the end of the list and return it."""
        entry = self._make_entry(params)
        self.entries.append(entry)
        return entry

    def insert(self, index: int, params: HostParams) -> FilterEntry:
        """Insert an entry before position ``index`` and return it."""
        entry = self._make_entry(params)
        self.entries.insert(index, entry)
        return entry

    def delete(self, index: int) -> HostParams:
        """Remove the entry at ``index`` and return its parameters."""
        return self.entries.pop(index).params

    def match(
        self,
        saddr: int,
        daddr: int,
        sport: int,
        dport: int,
        protocol: int,
        match_opp_mode: MatchOpposite = MatchOpposite.USECONFIG,
    ) -> bool:
        """Tell whether a packet passes the filter.

        The first entry that matches the addresses, ports and protocol
        decides: an including entry accepts, an excluding one rejects.
        Packets that no entry matches are rejected.
        """
        for entry in self.entries:
            hp = entry.params
            opposite = hp.match_opposite == "Y"
            if protocol in (_IPPROTO_TCP, _IPPROTO_UDP):
                forward = (
                    entry._forward(saddr, daddr)
                    and port_in_range(sport, hp.sport1, hp.sport2)
                    and port_in_range(dport, hp.dport1, hp.dport2)
                )
                if (protocol == _IPPROTO_TCP and match_opp_mode is MatchOpposite.ALWAYS) or opposite:
                    backward = (
                        entry._backward(saddr, daddr)
                        and port_in_range(sport, hp.dport1, hp.dport2)
                        and port_in_range(dport, hp.sport1, hp.sport2)
                    )
                else:
                    backward = False
            else:
                forward = entry._forward(saddr, daddr)
                backward = opposite and entry._backward(saddr, daddr)

            if (forward or backward) and hp.matches_protocol(protocol):
                return hp.reverse.upper() != "E"
        return False