"""Storage of IP filter definitions and of the list of defined filters."""

from __future__ import annotations

import bisect
import json
import os
import socket
import struct
import time
from dataclasses import asdict, dataclass

from ipmonitor.ipfilter import FilterList, HostParams

RECORD = struct.Struct("35s40s")
"""Layout of one record in the filter list file: description, file name."""

DESC_MAX = RECORD.size and 34
FILENAME_MAX = 39

_FILE_MODE = 0o600


class FilterFileError(Exception):
    """A filter file or the filter list file could not be read or written."""


def _field(text: str, limit: int) -> bytes:
    return text.encode("utf-8")[:limit]


def _text(raw: bytes) -> str:
    return raw.split(b"\0", 1)[0].decode("utf-8", errors="ignore")


@dataclass(frozen=True)
class FilterFileEntry:
    """One defined filter: its description and the file holding its entries."""

    desc: str
    filename: str

    def pack(self) -> bytes:
        """Return the fixed-size record stored in the filter list file."""
        return RECORD.pack(_field(self.desc, DESC_MAX), _field(self.filename, FILENAME_MAX))

    @classmethod
    def unpack(cls, data: bytes) -> FilterFileEntry:
        """Decode one record of the filter list file."""
        if len(data) != RECORD.size:
            raise FilterFileError(f"filter list record must be {RECORD.size} bytes, got {len(data)}")
        desc, filename = RECORD.unpack(data)
        return cls(desc=_text(desc), filename=_text(filename))


def genname(n: float) -> str:
    """Return the decimal representation of ``n`` for use as a file name."""
    return str(int(n))


def name_to_addr(name: str) -> int:
    """Return the IPv4 address of a dotted address or a host name."""
    try:
        packed = socket.inet_aton(name)
    except OSError:
        try:
            packed = socket.inet_aton(socket.gethostbyname(name))
        except (OSError, UnicodeError) as exc:
            raise FilterFileError(f"Unable to resolve {name}") from exc
    return int.from_bytes(packed, "big")


def _open_private(path: str, flags: int):
    fd = os.open(path, flags, _FILE_MODE)
    return os.fdopen(fd, "ab" if flags & os.O_APPEND else "wb")


def load_filter_list(path: str) -> list[FilterFileEntry]:
    """Read the filter list, ordered by description without regard to case.

    A missing, unreadable or empty list raises :class:`FilterFileError`.
    """
    try:
        with open(path, "rb") as fp:
            data = fp.read()
    except OSError as exc:
        raise FilterFileError("Error loading filter list file") from exc

    entries: list[FilterFileEntry] = []
    keys: list[str] = []
    usable = len(data) - len(data) % RECORD.size
    for offset in range(0, usable, RECORD.size):
        entry = FilterFileEntry.unpack(data[offset : offset + RECORD.size])
        key = entry.desc.lower()
        position = bisect.bisect_left(keys, key)
        keys.insert(position, key)
        entries.insert(position, entry)

    if not entries:
        raise FilterFileError("Error loading filter list file")
    return entries


def save_filter_list(path: str, entries: list[FilterFileEntry]) -> None:
    """Replace the filter list file with ``entries``."""
    try:
        with _open_private(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC) as fp:
            for entry in entries:
                fp.write(entry.pack())
    except OSError as exc:
        raise FilterFileError("Error writing filter list file") from exc


def _params_to_dict(params: HostParams) -> dict:
    data = asdict(params)
    data["protocols"] = sorted(params.protocols)
    return data


def _params_from_dict(data: object) -> HostParams:
    if not isinstance(data, dict):
        raise FilterFileError("malformed filter entry")
    try:
        values = dict(data)
        values["protocols"] = frozenset(int(p) for p in values.get("protocols", ()))
        return HostParams(**values)
    except (TypeError, ValueError) as exc:
        raise FilterFileError("malformed filter entry") from exc


def load_filter(path: str, resolve: bool = True) -> FilterList:
    """Read the entries of one filter file.

    With ``resolve`` the addresses are looked up, and entries whose names
    cannot be resolved are left out. Without it the addresses stay zero.
    """
    try:
        with open(path, encoding="utf-8") as fp:
            raw = json.load(fp)
    except OSError as exc:
        raise FilterFileError("Error opening IP filter data file") from exc
    except ValueError as exc:
        raise FilterFileError("malformed IP filter data file") from exc
    if not isinstance(raw, list):
        raise FilterFileError("malformed IP filter data file")

    resolver = name_to_addr if resolve else (lambda _name: 0)
    filterlist = FilterList(resolver=resolver)
    for item in raw:
        params = _params_from_dict(item)
        try:
            filterlist.append(params)
        except FilterFileError:
            continue
    return filterlist


def save_filter(path: str, filterlist: FilterList) -> None:
    """Write the entries of ``filterlist`` to the filter file ``path``."""
    data = [_params_to_dict(entry.params) for entry in filterlist]
    try:
        with _open_private(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC) as fp:
            fp.write(json.dumps(data).encode("utf-8"))
    except OSError as exc:
        raise FilterFileError("Unable to save filter changes") from exc


def define_filter(
    description: str,
    filterlist: FilterList,
    workdir: str,
    list_path: str,
    now: float | None = None,
) -> FilterFileEntry:
    """Store a new filter and record it in the filter list.

    The filter file is named after the time ``now`` and placed in
    ``workdir``. An empty description raises :class:`ValueError`.
    """
    if not description:
        raise ValueError("Enter an appropriate description for this filter")
    filename = genname(time.time() if now is None else now)
    path = os.path.join(workdir, filename)
    try:
        with _open_private(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC):
            pass
    except OSError as exc:
        raise FilterFileError("Cannot create filter data file") from exc

    entry = FilterFileEntry(desc=description, filename=filename)
    try:
        with _open_private(list_path, os.O_WRONLY | os.O_CREAT | os.O_APPEND) as fp:
            fp.write(entry.pack())
    except OSError as exc:
        raise FilterFileError("Error writing filter list file") from exc

    save_filter(path, filterlist)
    return FilterFileEntry.unpack(entry.pack())


def delete_filter(entry: FilterFileEntry, workdir: str, list_path: str) -> list[FilterFileEntry]:
    """Remove a filter's file and its record; return the remaining list."""
    entries = load_filter_list(list_path)
    if entry not in entries:
        raise FilterFileError(f"no such filter: {entry.desc}")
    try:
        os.unlink(os.path.join(workdir, entry.filename))
    except OSError:
        pass
    entries.remove(entry)
    save_filter_list(list_path, entries)
    return entries