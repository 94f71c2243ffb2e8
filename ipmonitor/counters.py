"""Packet and byte counters, split by traffic direction."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class PacketCounter:
    """Running count of packets and bytes."""

    packets: int = 0
    bytes: int = 0

    def update(self, nbytes: int) -> None:
        """Account one packet of ``nbytes`` bytes."""
        self.packets += 1
        self.bytes += nbytes

    def reset(self) -> None:
        """Zero both counts."""
        self.packets = 0
        self.bytes = 0


@dataclass
class ProtoCounter:
    """Totals for one protocol, with incoming and outgoing breakdown."""

    total: PacketCounter = field(default_factory=PacketCounter)
    incoming: PacketCounter = field(default_factory=PacketCounter)
    outgoing: PacketCounter = field(default_factory=PacketCounter)

    def update(self, outgoing: bool, nbytes: int) -> None:
        """Account one packet in the total and in its direction."""
        self.total.update(nbytes)
        if outgoing:
            self.outgoing.update(nbytes)
        else:
            self.incoming.update(nbytes)

    def reset(self) -> None:
        """Zero all three counters."""
        self.total.reset()
        self.outgoing.reset()
        self.incoming.reset()