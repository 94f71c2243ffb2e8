import ipaddress
import socket

import pytest

from ipmonitor.cidr import get_quad_mask
from ipmonitor.ipfilter import (
    WILDCARD,
    FilterList,
    HostParams,
    MatchOpposite,
    addr_in_net,
    make_host_params,
    parse_port,
    port_in_range,
)


def ip(text):
    return int(ipaddress.IPv4Address(text))


TCP = socket.IPPROTO_TCP
UDP = socket.IPPROTO_UDP
ICMP = socket.IPPROTO_ICMP


@pytest.mark.parametrize("text", ["80", "65535", " 22", "0"])
def test_parse_port_valid(text):
    assert parse_port(text) == int(text)


@pytest.mark.parametrize("text", ["65536", "abc", "", "-1", "12x"])
def test_parse_port_invalid_is_zero(text):
    assert parse_port(text) == 0


def test_port_in_range_single_and_wildcard():
    assert port_in_range(80, 80, 0)
    assert not port_in_range(81, 80, 0)
    assert port_in_range(12345, 0, 0)


def test_port_in_range_inclusive_bounds():
    assert port_in_range(1000, 1000, 2000)
    assert port_in_range(2000, 1000, 2000)
    assert not port_in_range(2001, 1000, 2000)
    assert not port_in_range(999, 1000, 2000)


def test_addr_in_net():
    mask = ip(get_quad_mask(24))
    assert addr_in_net(ip("10.0.0.5"), ip("10.0.0.0"), mask)
    assert not addr_in_net(ip("10.0.1.5"), ip("10.0.0.0"), mask)
    assert addr_in_net(ip("1.2.3.4"), 0, 0)


def test_empty_fields_become_wildcards():
    params = make_host_params()
    assert params.s_fqdn == WILDCARD
    assert params.s_mask == WILDCARD
    assert params.d_fqdn == WILDCARD
    assert params.d_mask == WILDCARD
    assert params.reverse == "I"
    assert params.match_opposite == "N"


def test_cidr_address_supplies_mask():
    params = make_host_params(saddr="10.0.0.0/24", daddr="192.168.1.7/32")
    assert params.s_fqdn == "10.0.0.0"
    assert params.s_mask == get_quad_mask(24)
    assert params.d_fqdn == "192.168.1.7"
    assert params.d_mask == "255.255.255.255"


def test_invalid_cidr_suffix_gives_wildcard_mask():
    params = make_host_params(saddr="10.0.0.0/x", daddr="10.0.0.0/40")
    assert params.s_mask == WILDCARD
    assert params.d_mask == WILDCARD


def test_explicit_mask_wins_over_cidr():
    params = make_host_params(saddr="10.0.0.0/8", smask="255.255.0.0")
    assert params.s_fqdn == "10.0.0.0"
    assert params.s_mask == "255.255.0.0"


def test_ports_are_parsed():
    params = make_host_params(sport1="1024", sport2="2048", dport1="80", dport2="bad")
    assert (params.sport1, params.sport2, params.dport1, params.dport2) == (1024, 2048, 80, 0)


def test_include_exclude_and_match_opposite():
    assert make_host_params(inex="e").reverse == "E"
    assert make_host_params(inex="x").reverse == "I"
    assert make_host_params(matchop="y").match_opposite == "Y"
    assert make_host_params(matchop="q").match_opposite == "N"


def test_protocol_names_and_ranges():
    params = make_host_params(protocols=["TCP", "all"], protolist="8, 18-20")
    assert params.all_ip
    assert params.protocols == frozenset({TCP, 8, 18, 19, 20})
    assert params.protolist == "8, 18-20"


def test_invalid_protocol_list_raises():
    with pytest.raises(ValueError):
        make_host_params(protolist="8, x")
    with pytest.raises(ValueError):
        make_host_params(protolist="20-18")
    with pytest.raises(ValueError):
        make_host_params(protolist="300")


def test_unknown_protocol_name_raises():
    with pytest.raises(ValueError):
        make_host_params(protocols=["bogus"])


def _web_filter(**overrides):
    fields = dict(saddr="10.0.0.0/24", dport1="80", protocols=["tcp"])
    fields.update(overrides)
    flist = FilterList()
    flist.append(make_host_params(**fields))
    return flist


def test_match_forward_direction():
    flist = _web_filter()
    assert flist.match(ip("10.0.0.5"), ip("192.168.1.1"), 40000, 80, TCP)
    assert not flist.match(ip("10.0.0.5"), ip("192.168.1.1"), 40000, 81, TCP)
    assert not flist.match(ip("10.0.1.5"), ip("192.168.1.1"), 40000, 80, TCP)


def test_match_protocol_not_selected():
    flist = _web_filter()
    assert not flist.match(ip("10.0.0.5"), ip("192.168.1.1"), 40000, 80, UDP)


def test_match_opposite_always_applies_to_tcp_only():
    flist = _web_filter(protocols=["tcp", "udp"])
    args = (ip("192.168.1.1"), ip("10.0.0.5"), 80, 40000)
    assert not flist.match(*args, TCP, MatchOpposite.USECONFIG)
    assert flist.match(*args, TCP, MatchOpposite.ALWAYS)
    assert not flist.match(*args, UDP, MatchOpposite.ALWAYS)


def test_match_opposite_from_entry():
    flist = _web_filter(matchop="Y")
    assert flist.match(ip("192.168.1.1"), ip("10.0.0.5"), 80, 40000, TCP)


def test_non_port_protocol_ignores_ports():
    flist = _web_filter(protocols=["icmp"])
    assert flist.match(ip("10.0.0.5"), ip("192.168.1.1"), 0, 0, ICMP)


def test_exclude_entry_rejects_first():
    flist = FilterList()
    flist.append(make_host_params(saddr="10.0.0.9/32", protocols=["all"], inex="E"))
    flist.append(make_host_params(saddr="10.0.0.0/24", protocols=["all"]))
    assert not flist.match(ip("10.0.0.9"), ip("1.1.1.1"), 1, 2, TCP)
    assert flist.match(ip("10.0.0.8"), ip("1.1.1.1"), 1, 2, TCP)


def test_empty_list_matches_nothing():
    assert not FilterList().match(ip("10.0.0.1"), ip("10.0.0.2"), 1, 2, TCP)


def test_insert_and_delete_keep_order():
    flist = FilterList()
    first = make_host_params(saddr="10.0.0.1")
    second = make_host_params(saddr="10.0.0.2")
    middle = make_host_params(saddr="10.0.0.3")
    flist.append(first)
    flist.append(second)
    flist.insert(1, middle)
    assert [entry.params for entry in flist] == [first, middle, second]
    assert flist.delete(0) == first
    assert len(flist) == 2
    assert flist[0].params == middle
    with pytest.raises(IndexError):
        flist.delete(5)


def test_entry_resolution_uses_resolver():
    flist = FilterList(resolver=lambda name: ip("10.1.2.3"))
    entry = flist.append(HostParams(s_fqdn="anything", s_mask="255.255.255.255"))
    assert entry.saddr == ip("10.1.2.3")
    assert entry.smask == ip("255.255.255.255")