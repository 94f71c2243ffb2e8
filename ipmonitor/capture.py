"""Packet capture from a raw packet socket, and the ``capture`` command."""

from __future__ import annotations

import argparse
import errno
import select
import socket
import struct
import sys
from dataclasses import dataclass
from typing import BinaryIO, Protocol

from ipmonitor.ifaces import ETH_P_ALL, InterfaceError, dev_bind_ifname

MAX_PACKET_SIZE = 96
"""Number of bytes kept from each captured packet."""

BATCH_FRAMES = 128
"""Number of packets a :class:`BatchBackend` reads in one go."""

RECV_TIMEOUT_MS = 250

PACKET_HOST = 0
PACKET_BROADCAST = 1
PACKET_MULTICAST = 2
PACKET_OTHERHOST = 3
PACKET_OUTGOING = 4

_SOL_PACKET = 263
_PACKET_STATISTICS = 6
_TPACKET_STATS = struct.Struct("II")
_RECV_FLAGS = socket.MSG_TRUNC | socket.MSG_DONTWAIT


class CaptureError(OSError):
    """The capture socket could not be set up or read."""


@dataclass(frozen=True)
class Packet:
    """A captured packet: its first bytes, full length and link details."""

    data: bytes
    length: int
    protocol: int = 0
    ifname: str = ""
    pkttype: int = PACKET_HOST
    hatype: int = 0
    hwaddr: bytes = b""

    @property
    def caplen(self) -> int:
        """Number of bytes actually kept."""
        return len(self.data)

    @property
    def outgoing(self) -> bool:
        """Tell whether the packet was sent by this host."""
        return self.pkttype == PACKET_OUTGOING


class Backend(Protocol):
    def have_packet(self) -> bool: ...

    def get_packet(self) -> Packet | None: ...

    def put_packet(self, pkt: Packet) -> None: ...


def _receive(sock: socket.socket) -> Packet | None:
    """Read one packet without blocking; ``None`` when none is waiting."""
    buf = bytearray(MAX_PACKET_SIZE)
    try:
        nbytes, _anc, _flags, address = sock.recvmsg_into([buf], 0, _RECV_FLAGS)
    except (BlockingIOError, InterruptedError):
        return None
    except OSError as exc:
        if exc.errno in (errno.EAGAIN, errno.EWOULDBLOCK, errno.EINTR):
            return None
        raise CaptureError(exc.errno, f"packet receive failed: {exc.strerror}") from exc
    if nbytes <= 0:
        return None
    data = bytes(buf[: min(nbytes, MAX_PACKET_SIZE)])
    if isinstance(address, tuple) and len(address) >= 2:
        ifname, protocol = address[0], address[1]
        pkttype = address[2] if len(address) > 2 else PACKET_HOST
        hatype = address[3] if len(address) > 3 else 0
        hwaddr = address[4] if len(address) > 4 else b""
        return Packet(data, nbytes, protocol, ifname, pkttype, hatype, hwaddr)
    return Packet(data, nbytes)


class RecvmsgBackend:
    """Reads packets one at a time as the socket reports them ready."""

    def __init__(self, sock: socket.socket) -> None:
        self.sock = sock
        self.current: Packet | None = None

    def have_packet(self) -> bool:
        """Nothing is ever buffered, so the socket must always be polled."""
        return False

    def get_packet(self) -> Packet | None:
        """Read one waiting packet, or return ``None``."""
        self.current = _receive(self.sock)
        return self.current

    def put_packet(self, pkt: Packet) -> None:
        """Forget the packet last handed out once it has been processed."""
        if pkt is self.current:
            self.current = None


class BatchBackend:
    """Reads up to a batch of packets at once and hands them out in order."""

    def __init__(self, sock: socket.socket, frames: int = BATCH_FRAMES) -> None:
        if frames < 1:
            raise ValueError("a batch needs at least one frame")
        self.sock = sock
        self.frames = frames
        self._slots: list[Packet | None] = [None] * frames
        self._lastslot = 0
        self._slot = frames

    def _find_filled_slot(self) -> int | None:
        for i in range(self._lastslot, self._lastslot + self.frames):
            slot = i % self.frames
            if self._slots[slot] is not None:
                return slot
        return None

    def have_packet(self) -> bool:
        """Tell whether a packet from the last batch is still unprocessed."""
        return self._find_filled_slot() is not None

    def get_packet(self) -> Packet | None:
        """Return the next buffered packet, reading a new batch when empty."""
        slot = self._find_filled_slot()
        if slot is None:
            self._slots = [None] * self.frames
            received = 0
            while received < self.frames:
                pkt = _receive(self.sock)
                if pkt is None:
                    break
                self._slots[received] = pkt
                received += 1
            if received == 0:
                return None
            slot = 0
        self._slot = slot
        return self._slots[slot]

    def put_packet(self, pkt: Packet) -> None:
        """Release the slot of the packet last handed out."""
        if self._slot < self.frames:
            self._slots[self._slot] = None
            self._lastslot = self._slot
        else:
            self._slot = self.frames


def _open_packet_socket(ifname: str | None) -> socket.socket:
    family = getattr(socket, "AF_PACKET", None)
    if family is None:
        raise CaptureError(errno.EAFNOSUPPORT, "packet sockets are not supported here")
    # Without an interface the socket listens for every protocol at once;
    # with one, the protocol is set when binding.
    proto = socket.htons(ETH_P_ALL) if ifname is None else 0
    try:
        return socket.socket(family, socket.SOCK_RAW, proto)
    except OSError as exc:
        raise CaptureError(exc.errno, f"Unable to open packet socket: {exc.strerror}") from exc


class Capture:
    """A packet capture on one interface, or on all when none is named."""

    def __init__(
        self,
        ifname: str | None = None,
        *,
        sock: socket.socket | None = None,
        backend: Backend | None = None,
    ) -> None:
        self.ifname = ifname
        self._dropped = 0
        if sock is None:
            sock = _open_packet_socket(ifname)
            try:
                seconds, msecs = divmod(RECV_TIMEOUT_MS, 1000)
                sock.setsockopt(
                    socket.SOL_SOCKET, socket.SO_RCVTIMEO, struct.pack("ll", seconds, msecs * 1000)
                )
                dev_bind_ifname(sock, ifname)
            except (OSError, InterfaceError) as exc:
                sock.close()
                raise CaptureError(exc.errno, f"Unable to initialize packet capture: {exc}") from exc
        self.sock = sock
        self.backend: Backend = backend if backend is not None else BatchBackend(sock)

    def __enter__(self) -> Capture:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def get_packet(self, timeout: float | None = None) -> Packet | None:
        """Wait up to ``timeout`` seconds for a packet and return it.

        ``None`` waits without limit. Returns ``None`` when no packet came.
        """
        have = self.backend.have_packet()
        if not have:
            poller = select.poll()
            poller.register(self.sock.fileno(), select.POLLIN)
            wait = None if timeout is None else max(0, int(timeout * 1000))
            for _fd, events in poller.poll(wait):
                if events & (select.POLLERR | select.POLLNVAL):
                    raise CaptureError(errno.EIO, "Packet receive failed")
                if events & select.POLLIN:
                    have = True
        if have:
            return self.backend.get_packet()
        return None

    def put_packet(self, pkt: Packet) -> None:
        """Hand a processed packet back to the backend."""
        self.backend.put_packet(pkt)

    def dropped(self) -> int:
        """Return the number of packets the kernel dropped so far."""
        try:
            raw = self.sock.getsockopt(_SOL_PACKET, _PACKET_STATISTICS, _TPACKET_STATS.size)
        except OSError as exc:
            raise CaptureError(exc.errno, f"getsockopt(PACKET_STATISTICS): {exc.strerror}") from exc
        _packets, drops = _TPACKET_STATS.unpack(raw)
        self._dropped += drops
        return self._dropped

    def close(self) -> None:
        """Close the capture socket."""
        self.sock.close()


def dump_packet(pkt: Packet, fp: BinaryIO) -> int:
    """Write the captured bytes of ``pkt`` to ``fp``; return their number."""
    return fp.write(pkt.data)


def main(argv: list[str] | None = None) -> int:
    """Capture packets from a device and write them to a file or stdout."""
    parser = argparse.ArgumentParser(prog="ipmonitor capture")
    parser.add_argument("-c", "--capture", type=int, default=1, metavar="n",
                        help="capture <n> packets (default: 1)")
    parser.add_argument("-o", "--output", metavar="file",
                        help="save captured packet into <file> (default: <stdout>)")
    parser.add_argument("device")
    args = parser.parse_args(argv)

    try:
        capture = Capture(args.device)
    except CaptureError as exc:
        raise SystemExit(f"Unable to initialize packet capture interface: {exc}") from exc

    with capture:
        try:
            out = open(args.output, "wb") if args.output else sys.stdout.buffer
        except OSError as exc:
            raise SystemExit(f"Unable to open file: {exc}") from exc
        try:
            captured = 0
            while True:
                try:
                    pkt = capture.get_packet(None)
                except CaptureError as exc:
                    raise SystemExit(f"Failed to get packet: {exc}") from exc
                if pkt is None:
                    continue
                dump_packet(pkt, out)
                capture.put_packet(pkt)
                captured += 1
                sys.stderr.write(f"\rCaptured {captured} packet(s) out of {args.capture}")
                sys.stderr.flush()
                if captured >= args.capture:
                    break
            sys.stderr.write("\n")
        finally:
            if args.output:
                out.close()
            else:
                out.flush()
    return 0