import errno
import io
import socket

import pytest

from ipmonitor.capture import (
    MAX_PACKET_SIZE,
    PACKET_OUTGOING,
    BatchBackend,
    Capture,
    CaptureError,
    Packet,
    RecvmsgBackend,
    dump_packet,
    main,
)


@pytest.fixture
def pair():
    a, b = socket.socketpair(socket.AF_UNIX, socket.SOCK_DGRAM)
    yield a, b
    a.close()
    b.close()


def test_recvmsg_backend_reads_packet(pair):
    reader, writer = pair
    backend = RecvmsgBackend(reader)
    assert backend.have_packet() is False
    writer.send(b"hello")
    with Capture(sock=reader, backend=backend) as cap:
        pkt = cap.get_packet(1.0)
        assert pkt.data == b"hello"
        assert pkt.length == 5


def test_truncated_packet_keeps_full_length(pair):
    reader, writer = pair
    payload = bytes(range(200))
    writer.send(payload)
    pkt = RecvmsgBackend(reader).get_packet()
    assert pkt.caplen == MAX_PACKET_SIZE
    assert pkt.length == len(payload)
    assert pkt.data == payload[:MAX_PACKET_SIZE]


def test_recvmsg_backend_empty_returns_none(pair):
    reader, _ = pair
    assert RecvmsgBackend(reader).get_packet() is None


def test_batch_backend_hands_out_in_order(pair):
    reader, writer = pair
    for item in (b"one", b"two", b"three"):
        writer.send(item)
    backend = BatchBackend(reader, frames=8)
    assert backend.have_packet() is False
    seen = []
    pkt = backend.get_packet()
    while pkt is not None:
        seen.append(pkt.data)
        backend.put_packet(pkt)
        pkt = backend.get_packet()
    assert seen == [b"one", b"two", b"three"]
    assert backend.have_packet() is False


def test_batch_backend_buffers_after_first_read(pair):
    reader, writer = pair
    writer.send(b"a")
    writer.send(b"b")
    backend = BatchBackend(reader, frames=4)
    first = backend.get_packet()
    backend.put_packet(first)
    assert backend.have_packet() is True


def test_batch_backend_limited_by_frames(pair):
    reader, writer = pair
    for item in (b"1", b"2", b"3"):
        writer.send(item)
    backend = BatchBackend(reader, frames=2)
    got = []
    for _ in range(3):
        pkt = backend.get_packet()
        got.append(pkt.data)
        backend.put_packet(pkt)
    assert got == [b"1", b"2", b"3"]


def test_batch_backend_rejects_zero_frames(pair):
    reader, _ = pair
    with pytest.raises(ValueError):
        BatchBackend(reader, frames=0)


def test_capture_timeout_returns_none(pair):
    reader, _ = pair
    cap = Capture(sock=reader)
    assert cap.get_packet(0.05) is None


def test_capture_default_backend_is_batch(pair):
    reader, writer = pair
    writer.send(b"xyz")
    cap = Capture(sock=reader)
    pkt = cap.get_packet(1.0)
    cap.put_packet(pkt)
    assert isinstance(cap.backend, BatchBackend)
    assert pkt.data == b"xyz"


def test_close_closes_socket(pair):
    reader, _ = pair
    with Capture(sock=reader):
        pass
    assert reader.fileno() == -1


def test_dropped_on_non_packet_socket_raises(pair):
    reader, _ = pair
    with pytest.raises(CaptureError):
        Capture(sock=reader).dropped()


class _FailingSocket:
    def recvmsg_into(self, buffers, ancbufsize, flags):
        raise OSError(errno.EBADF, "bad file descriptor")


def test_receive_error_raises_capture_error():
    with pytest.raises(CaptureError):
        RecvmsgBackend(_FailingSocket()).get_packet()


class _PacketSocket:
    def recvmsg_into(self, buffers, ancbufsize, flags):
        buffers[0][:4] = b"\x45\x00\x00\x14"
        return 20, [], 0, ("eth0", 0x0800, PACKET_OUTGOING, 1, b"\x02\x00\x00\x00\x00\x01")


def test_link_address_fields_are_copied():
    pkt = RecvmsgBackend(_PacketSocket()).get_packet()
    assert pkt.ifname == "eth0"
    assert pkt.protocol == 0x0800
    assert pkt.outgoing is True
    assert pkt.length == 20
    assert pkt.caplen == 20
    assert pkt.data[:4] == b"\x45\x00\x00\x14"


def test_dump_packet_writes_captured_bytes():
    out = io.BytesIO()
    pkt = Packet(data=b"abcdef", length=1500)
    written = dump_packet(pkt, out)
    assert written == len(pkt.data)
    assert out.getvalue() == b"abcdef"


def test_main_requires_device():
    with pytest.raises(SystemExit) as info:
        main([])
    assert info.value.code == 2


def test_main_rejects_two_devices():
    with pytest.raises(SystemExit) as info:
        main(["eth0", "eth1"])
    assert info.value.code == 2