"""Network interface discovery and interface flag queries."""

from __future__ import annotations

import fcntl
import socket
import struct
from collections.abc import Iterator

IFNAMSIZ = 16
IFF_UP = 0x1
ETH_P_ALL = 0x0003

_SIOCGIFFLAGS = 0x8913
_SIOCSIFFLAGS = 0x8914
_SIOCGIFMTU = 0x8921

_IFREQ_SHORT = struct.Struct("16sH22x")
_IFREQ_INT = struct.Struct("16si20x")


class InterfaceError(OSError):
    """An interface query or change failed."""


def parse_iface_line(line: str, size: int = IFNAMSIZ) -> str:
    """Return the interface name of one ``/proc/net/dev`` data line.

    An empty string is returned when the name would not fit in ``size``
    bytes including the terminator.
    """
    token = next((part for part in line.split(":") if part), "")
    name = token.lstrip()
    if len(name) >= size:
        return ""
    return name


def iter_interfaces(path: str = "/proc/net/dev") -> Iterator[str]:
    """Yield the interface names listed in a ``/proc/net/dev`` style file."""
    with open(path, encoding="utf-8", errors="replace") as fp:
        next(fp, None)
        next(fp, None)
        for line in fp:
            name = parse_iface_line(line)
            if name:
                yield name


def _ifreq_ioctl(iface: str, request: int, layout: struct.Struct, value: int = 0) -> int:
    payload = layout.pack(iface.encode()[: IFNAMSIZ - 1], value)
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP) as sock:
            result = fcntl.ioctl(sock.fileno(), request, payload)
    except OSError as exc:
        raise InterfaceError(exc.errno, f"{iface}: {exc.strerror}") from exc
    return layout.unpack(result)[1]


def dev_get_flags(iface: str) -> int:
    """Return the interface flags of ``iface``."""
    return _ifreq_ioctl(iface, _SIOCGIFFLAGS, _IFREQ_SHORT)


def dev_up(iface: str) -> bool:
    """Tell whether ``iface`` exists and is administratively up."""
    try:
        return bool(dev_get_flags(iface) & IFF_UP)
    except InterfaceError:
        return False


def dev_get_ifindex(iface: str) -> int:
    """Return the kernel index of ``iface``."""
    try:
        return socket.if_nametoindex(iface)
    except (OSError, ValueError) as exc:
        raise InterfaceError(getattr(exc, "errno", None), f"{iface}: {exc}") from exc


def dev_get_mtu(iface: str) -> int:
    """Return the MTU of ``iface``."""
    return _ifreq_ioctl(iface, _SIOCGIFMTU, _IFREQ_INT)


def dev_set_flags(iface: str, flags: int) -> None:
    """Set the given flag bits on ``iface``."""
    current = dev_get_flags(iface)
    _ifreq_ioctl(iface, _SIOCSIFFLAGS, _IFREQ_SHORT, (current | flags) & 0xFFFF)


def dev_clear_flags(iface: str, flags: int) -> None:
    """Clear the given flag bits on ``iface``."""
    current = dev_get_flags(iface)
    _ifreq_ioctl(iface, _SIOCSIFFLAGS, _IFREQ_SHORT, current & ~flags & 0xFFFF)


def dev_get_ifname(ifindex: int) -> str:
    """Return the name of the interface with kernel index ``ifindex``."""
    try:
        return socket.if_indextoname(ifindex)
    except (OSError, ValueError, OverflowError) as exc:
        raise InterfaceError(getattr(exc, "errno", None), f"index {ifindex}: {exc}") from exc


def dev_bind_ifname(sock: socket.socket, ifname: str | None) -> None:
    """Bind a packet socket to ``ifname`` for all protocols.

    With no interface name the socket is left unbound; a packet socket
    opened for all protocols then receives from every interface.
    """
    if ifname is None:
        return
    try:
        sock.bind((ifname, ETH_P_ALL))
    except OSError as exc:
        raise InterfaceError(exc.errno, f"{ifname}: {exc.strerror}") from exc