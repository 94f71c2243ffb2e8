# ipmonitor

Building blocks for watching IP traffic on Linux hosts: raw packet capture,
per-interface and per-protocol counters with moving-average rates, a LAN
host table keyed by hardware address, and IP filters that decide which
packets pass.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Capturing packets from the command line

The `ipmonitor-capture` command opens a raw packet socket bound to one
interface, waits for packets and writes the captured bytes of each one out:

```
ipmonitor-capture [options] <device>
```

Options:

- `-c N`, `--capture N`: capture N packets (default: 1)
- `-o FILE`, `--output FILE`: write the captured bytes to FILE
  (default: standard output)

Only the first 96 bytes of each packet are kept (`MAX_PACKET_SIZE` in
`ipmonitor.capture`), and they are written one after another with no
framing. Progress is reported on standard error. Raw packet sockets need
root or the `CAP_NET_RAW` capability:

```
sudo ipmonitor-capture -c 10 -o packets.bin eth0
```

## Library overview

| Module | What it provides |
| --- | --- |
| `ipmonitor.cidr` | Subnet masks from prefix lengths and back: `get_mask`, `get_quad_mask`, `get_maskbits`, `split_address` |
| `ipmonitor.counters` | `PacketCounter` and `ProtoCounter` (total, incoming and outgoing packets and bytes) |
| `ipmonitor.paths` | `get_path` places a file in the work, log or lock directory of a `Directories`, chosen by `DirType`; the work and log directories can be overridden from the environment |
| `ipmonitor.errors` | `ErrorReporter`, which formats a message and sends it to standard error, or to the `ipmonitor` logger when `daemonized` is set |
| `ipmonitor.ifaces` | Interface names from `/proc/net/dev` (`iter_interfaces`, `parse_iface_line`) and queries such as `dev_up`, `dev_get_ifindex`, `dev_get_mtu`, `dev_get_flags`, `dev_set_flags`, `dev_clear_flags`, `dev_get_ifname`, `dev_bind_ifname`; failures raise `InterfaceError` |
| `ipmonitor.display` | Formatting and colour scheme: `format_large_number`, `format_packet_drops`, `screen_update_rate`, `next_screen_update`, `standard_styles` (named `Style` values), `color_pairs` |
| `ipmonitor.ipfilter` | `make_host_params` builds `HostParams` from form-like text; `FilterList` of `FilterEntry` objects with `append`, `insert`, `delete` and `match`; helpers `parse_port`, `addr_in_net`, `port_in_range`; `MatchOpposite` |
| `ipmonitor.filterstate` | `FilterState`: whether ARP, RARP and other non-IP traffic is shown and whether an IP filter is applied; `toggle`, `status_line`, `nonip_filter`, and `save`/`load` as JSON |
| `ipmonitor.filterfiles` | The list of defined filters as fixed-size binary records (`FilterFileEntry`, `load_filter_list`, `save_filter_list`), filter rule files as JSON (`load_filter`, `save_filter`), and `define_filter`, `delete_filter`, `genname`, `name_to_addr`; failures raise `FilterFileError` |
| `ipmonitor.capture` | `Capture` over a raw packet socket, with `BatchBackend` (default) or `RecvmsgBackend`, giving `Packet` objects; `dropped`, `dump_packet`, and the `main` of the command above |
| `ipmonitor.detstats` | Detailed interface statistics: `InterfaceCounts.process` of `PacketSummary` values, `InterfaceRates.update`, `RateMeter`, `format_rate`, `format_pps`, `write_detstats_log` |
| `ipmonitor.hostmon` | LAN host monitor: `HostTable` of `HostEntry` rows with `process`, `lookup`, `add`, `update_rates`, `sort` by `SortKey`, `scroll` and `write_log`; `format_mac`, `LinkType` |

### Examples

```python
from ipmonitor.cidr import get_quad_mask, split_address

get_quad_mask(24)                  # '255.255.255.0'
split_address("10.0.0.0/8")        # ('10.0.0.0', 8)
```

```python
import ipaddress
from ipmonitor.ipfilter import FilterList, make_host_params

rules = FilterList()
rules.append(make_host_params(saddr="192.168.1.0/24", protocols=["tcp"]))

src = int(ipaddress.IPv4Address("192.168.1.5"))
dst = int(ipaddress.IPv4Address("10.0.0.1"))
rules.match(src, dst, 40000, 80, 6)    # True: TCP from 192.168.1.0/24
rules.match(src, dst, 40000, 53, 17)   # False: UDP is not selected
```

```python
from ipmonitor.hostmon import HostTable, LinkType, SortKey

table = HostTable(height=20)
table.process(LinkType.ETHER, "eth0",
              bytes.fromhex("020000000001"), bytes.fromhex("020000000002"),
              length=60, is_ip=True)
table.update_rates(1000)
table.sort(SortKey.OUT_BYTES)
```

## What the package does not do

- It has no interactive terminal screens or menus. `ipmonitor.display`
  only formats numbers and describes colour styles; drawing them is left
  to the caller.
- It does not decode packet headers. `InterfaceCounts.process` takes a
  `PacketSummary` that the caller fills in (link protocol, IP length,
  transport protocol, checksum result), and `HostTable.process` takes the
  hardware addresses directly.
- The only command is `ipmonitor-capture`. Interface statistics and the
  LAN host monitor are library classes, not running monitors, and there is
  no background mode.