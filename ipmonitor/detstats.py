"""Detailed per-interface traffic statistics: counters, rates and the log."""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import TextIO

from ipmonitor.counters import PacketCounter, ProtoCounter

ETH_P_IP = 0x0800
ETH_P_IPV6 = 0x86DD

IPPROTO_ICMP = 1
IPPROTO_TCP = 6
IPPROTO_UDP = 17
IPPROTO_ICMPV6 = 58

IPV6_HEADER_LEN = 40
RATE_SAMPLES = 5
"""Number of one-second samples the moving averages are taken over."""


class PacketResult(Enum):
    """Outcome of decoding a captured packet."""

    OK = "ok"
    MORE_FRAGMENTS = "more_fragments"
    CHECKSUM_ERROR = "checksum_error"
    FILTERED = "filtered"
    INVALID = "invalid"


_ACCOUNTED = frozenset(
    {PacketResult.OK, PacketResult.MORE_FRAGMENTS, PacketResult.CHECKSUM_ERROR}
)


@dataclass(frozen=True)
class PacketSummary:
    """What the statistics need to know about one decoded packet.

    ``ip_length`` is the total-length field of an IPv4 header, or the
    payload-length field of an IPv6 header; ``protocol`` is the link-layer
    protocol and ``ip_protocol`` the transport protocol number.
    """

    result: PacketResult
    length: int
    protocol: int
    outgoing: bool = False
    broadcast: bool = False
    ip_length: int = 0
    ip_protocol: int = 0


class RateMeter:
    """Moving average of per-second rates over the last few samples."""

    def __init__(self, samples: int = RATE_SAMPLES) -> None:
        if samples < 1:
            raise ValueError("a rate meter needs at least one sample")
        self._samples: deque[int] = deque(maxlen=samples)

    def add(self, amount: int, msecs: int) -> None:
        """Record ``amount`` units counted over ``msecs`` milliseconds."""
        if msecs <= 0:
            raise ValueError(f"interval must be positive: {msecs}")
        self._samples.append(amount * 1000 // msecs)

    def average(self) -> int:
        """Return the average per-second rate of the recorded samples."""
        if not self._samples:
            return 0
        return sum(self._samples) // len(self._samples)


def format_rate(rate: int) -> str:
    """Format a byte rate per second as a bit rate with a fitting unit."""
    value = rate * 8 / 1000
    unit = "kbps"
    for bigger in ("Mbps", "Gbps"):
        if value < 1000:
            break
        value /= 1000
        unit = bigger
    return f"{value:9.2f} {unit}"


def format_pps(rate: int) -> str:
    """Format a packet rate per second."""
    return f"{rate:9d} pps"


@dataclass
class InterfaceCounts:
    """Packet and byte totals of one interface, by protocol and direction."""

    total: ProtoCounter = field(default_factory=ProtoCounter)
    bad: PacketCounter = field(default_factory=PacketCounter)
    ipv4: ProtoCounter = field(default_factory=ProtoCounter)
    ipv6: ProtoCounter = field(default_factory=ProtoCounter)
    nonip: ProtoCounter = field(default_factory=ProtoCounter)
    bcast: ProtoCounter = field(default_factory=ProtoCounter)
    tcp: ProtoCounter = field(default_factory=ProtoCounter)
    udp: ProtoCounter = field(default_factory=ProtoCounter)
    icmp: ProtoCounter = field(default_factory=ProtoCounter)
    other: ProtoCounter = field(default_factory=ProtoCounter)
    span: ProtoCounter = field(default_factory=ProtoCounter)
    span_bcast: PacketCounter = field(default_factory=PacketCounter)

    def process(self, summary: PacketSummary) -> bool:
        """Account one packet; return whether it was counted at all.

        Only decoded packets, fragments and packets with a bad checksum are
        counted. IPv4 packets with a bad checksum count as checksum errors
        only, beyond the interface totals.
        """
        if summary.result not in _ACCOUNTED:
            return False

        outgoing = summary.outgoing
        self.total.update(outgoing, summary.length)
        if summary.broadcast:
            self.bcast.update(outgoing, summary.length)
            self.span_bcast.update(summary.length)
        self.span.update(outgoing, summary.length)

        if summary.protocol == ETH_P_IP:
            if summary.result is PacketResult.CHECKSUM_ERROR:
                self.bad.update(summary.length)
                return True
            iplen = summary.ip_length
            self.ipv4.update(outgoing, iplen)
        elif summary.protocol == ETH_P_IPV6:
            iplen = summary.ip_length + IPV6_HEADER_LEN
            self.ipv6.update(outgoing, iplen)
        else:
            self.nonip.update(outgoing, summary.length)
            return True

        if summary.ip_protocol == IPPROTO_TCP:
            self.tcp.update(outgoing, iplen)
        elif summary.ip_protocol == IPPROTO_UDP:
            self.udp.update(outgoing, iplen)
        elif summary.ip_protocol in (IPPROTO_ICMP, IPPROTO_ICMPV6):
            self.icmp.update(outgoing, iplen)
        else:
            self.other.update(outgoing, iplen)
        return True


@dataclass
class InterfaceRates:
    """Current and peak byte and packet rates of one interface."""

    rate: RateMeter = field(default_factory=RateMeter)
    rate_in: RateMeter = field(default_factory=RateMeter)
    rate_out: RateMeter = field(default_factory=RateMeter)
    rate_bcast: RateMeter = field(default_factory=RateMeter)
    pps_rate: RateMeter = field(default_factory=RateMeter)
    pps_rate_in: RateMeter = field(default_factory=RateMeter)
    pps_rate_out: RateMeter = field(default_factory=RateMeter)
    pps_rate_bcast: RateMeter = field(default_factory=RateMeter)

    activity: int = 0
    peakactivity: int = 0
    activity_in: int = 0
    peakactivity_in: int = 0
    activity_out: int = 0
    peakactivity_out: int = 0
    activity_bcast: int = 0

    pps: int = 0
    peakpps: int = 0
    pps_in: int = 0
    peakpps_in: int = 0
    pps_out: int = 0
    peakpps_out: int = 0
    pps_bcast: int = 0

    def update(self, counts: InterfaceCounts, msecs: int) -> None:
        """Fold the traffic counted since the last update into the rates.

        The span counters of ``counts`` are reset afterwards.
        """
        span = counts.span
        self.rate.add(span.total.bytes, msecs)
        self.activity = self.rate.average()
        self.rate_in.add(span.incoming.bytes, msecs)
        self.activity_in = self.rate_in.average()
        self.rate_out.add(span.outgoing.bytes, msecs)
        self.activity_out = self.rate_out.average()
        self.rate_bcast.add(counts.span_bcast.bytes, msecs)
        self.activity_bcast = self.rate_bcast.average()

        self.pps_rate.add(span.total.packets, msecs)
        self.pps = self.pps_rate.average()
        self.pps_rate_in.add(span.incoming.packets, msecs)
        self.pps_in = self.pps_rate_in.average()
        self.pps_rate_out.add(span.outgoing.packets, msecs)
        self.pps_out = self.pps_rate_out.average()
        self.pps_rate_bcast.add(counts.span_bcast.packets, msecs)
        self.pps_bcast = self.pps_rate_bcast.average()

        span.reset()
        counts.span_bcast.reset()

        self.peakactivity = max(self.peakactivity, self.activity)
        self.peakactivity_in = max(self.peakactivity_in, self.activity_in)
        self.peakactivity_out = max(self.peakactivity_out, self.activity_out)
        self.peakpps = max(self.peakpps, self.pps)
        self.peakpps_in = max(self.peakpps_in, self.pps_in)
        self.peakpps_out = max(self.peakpps_out, self.pps_out)


def _direction_line(counter: ProtoCounter) -> str:
    return (
        f"\t(incoming: {counter.incoming.packets} packets, {counter.incoming.bytes} bytes; "
        f"outgoing: {counter.outgoing.packets} packets, {counter.outgoing.bytes} bytes)\n"
    )


def write_detstats_log(
    fp: TextIO,
    ifname: str,
    counts: InterfaceCounts,
    rates: InterfaceRates,
    nsecs: int,
    now: float | None = None,
) -> None:
    """Write a detailed statistics report for ``ifname`` to ``fp``.

    Average and peak rates are included once the facility has run for
    more than five seconds.
    """
    stamp = time.ctime(time.time() if now is None else now)
    fp.write(f"\n*** Detailed statistics for interface {ifname}, generated {stamp}\n\n")

    sections = (
        ("Total: \t", counts.total),
        ("IP: \t", counts.ipv4),
        ("TCP: ", counts.tcp),
        ("UDP: ", counts.udp),
        ("ICMP: ", counts.icmp),
        ("Other IP: ", counts.other),
        ("Non-IP: ", counts.nonip),
    )
    for label, counter in sections:
        fp.write(f"{label}{counter.total.packets} packets, {counter.total.bytes} bytes\n")
        fp.write(_direction_line(counter))
    fp.write(
        f"Broadcast: {counts.bcast.total.packets} packets, {counts.bcast.total.bytes} bytes\n"
    )

    if nsecs > 5:
        total = counts.total
        fp.write("\nAverage rates:\n")
        for label, counter in (
            ("Total", total.total),
            ("Incoming", total.incoming),
            ("Outgoing", total.outgoing),
        ):
            fp.write(
                f"  {label}:\t{format_rate(counter.bytes // nsecs)}, "
                f"{format_pps(counter.packets // nsecs)}\n"
            )
        fp.write(
            f"\nPeak total activity: {format_rate(rates.peakactivity)}, "
            f"{format_pps(rates.peakpps)}\n"
        )
        fp.write(
            f"Peak incoming rate: {format_rate(rates.peakactivity_in)}, "
            f"{format_pps(rates.peakpps_in)}\n"
        )
        fp.write(
            f"Peak outgoing rate: {format_rate(rates.peakactivity_out)}, "
            f"{format_pps(rates.peakpps_out)}\n\n"
        )

    fp.write(f"IP checksum errors: {counts.bad.packets}\n\n")
    fp.write(f"Running time: {nsecs} seconds\n")
    fp.flush()