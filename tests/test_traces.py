from pathlib import Path

import pytest

from pimsim.interfaces import ConfigurationError, Request, RequestType
from pimsim.traces import (
    GEM5Frontend,
    LoadStoreTrace,
    PIMLoadStoreTrace,
    ReadWriteTrace,
    parse_address,
    read_loadstore_trace,
    read_pim_loadstore_trace,
    read_readwrite_trace,
)


class FakeMemory:
    def __init__(self, capacity_per_tick=None):
        self.capacity = capacity_per_tick
        self.sent: list[Request] = []
        self._accepted_this_tick = 0

    def new_tick(self):
        self._accepted_this_tick = 0

    def send(self, req):
        if self.capacity is not None and self._accepted_this_tick >= self.capacity:
            return False
        self._accepted_this_tick += 1
        self.sent.append(req)
        return True


def write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "trace.txt"
    path.write_text(text)
    return path


def test_parse_address_hex_and_decimal():
    assert parse_address("0x10") == 0x10
    assert parse_address("0XfF") == 0xFF
    assert parse_address("1234") == 1234


def test_parse_address_invalid():
    with pytest.raises(ValueError):
        parse_address("zz")


def test_read_loadstore_trace(tmp_path):
    path = write(tmp_path, "LD 0x40\nST 128\n")
    assert read_loadstore_trace(path) == [
        (RequestType.Read, 0x40),
        (RequestType.Write, 128),
    ]


def test_loadstore_rejects_pim_opcode(tmp_path):
    path = write(tmp_path, "PIM_SFM 0x40\n")
    with pytest.raises(ConfigurationError, match="format invalid"):
        read_loadstore_trace(path)


def test_wrong_token_count_is_invalid(tmp_path):
    path = write(tmp_path, "LD 0x40 extra\n")
    with pytest.raises(ConfigurationError, match="format invalid"):
        read_loadstore_trace(path)


def test_missing_trace(tmp_path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        read_loadstore_trace(tmp_path / "absent.txt")


def test_directory_cannot_be_opened(tmp_path):
    with pytest.raises(ConfigurationError, match="cannot be opened"):
        read_loadstore_trace(tmp_path)


@pytest.mark.parametrize("kind", list(RequestType))
def test_read_pim_trace_every_type(tmp_path, kind):
    opcode = {"Read": "LD", "Write": "ST"}.get(kind.name, kind.name)
    path = write(tmp_path, f"{opcode} 7\n")
    assert read_pim_loadstore_trace(path) == [(kind, 7)]


def test_read_pim_trace_unknown_opcode(tmp_path):
    path = write(tmp_path, "PIM_UNKNOWN 7\n")
    with pytest.raises(ConfigurationError):
        read_pim_loadstore_trace(path)


def test_read_readwrite_trace(tmp_path):
    path = write(tmp_path, "R 0,1,2\nW 3,4\n")
    assert read_readwrite_trace(path) == [(False, [0, 1, 2]), (True, [3, 4])]


def test_read_readwrite_trace_bad_opcode(tmp_path):
    path = write(tmp_path, "X 0,1\n")
    with pytest.raises(ConfigurationError):
        read_readwrite_trace(path)


def test_loadstore_frontend_sends_everything_in_one_tick(tmp_path):
    path = write(tmp_path, "LD 0x40\nST 0x80\nLD 0xC0\n")
    frontend = LoadStoreTrace(path, clock_ratio=2)
    memory = FakeMemory()
    frontend.connect_memory_system(memory)
    assert frontend.clock_ratio == 2
    assert not frontend.is_finished()
    frontend.tick()
    assert frontend.is_finished()
    assert [(r.type_id, r.addr) for r in memory.sent] == [
        (RequestType.Read, 0x40),
        (RequestType.Write, 0x80),
        (RequestType.Read, 0xC0),
    ]


def test_loadstore_frontend_stops_when_rejected(tmp_path):
    path = write(tmp_path, "LD 1\nLD 2\nLD 3\n")
    frontend = LoadStoreTrace(path, clock_ratio=1)
    memory = FakeMemory(capacity_per_tick=1)
    frontend.connect_memory_system(memory)
    frontend.tick()
    assert [r.addr for r in memory.sent] == [1]
    assert not frontend.is_finished()
    for _ in range(2):
        memory.new_tick()
        frontend.tick()
    assert [r.addr for r in memory.sent] == [1, 2, 3]
    assert frontend.is_finished()
    memory.new_tick()
    frontend.tick()
    assert len(memory.sent) == 3


def test_empty_trace_is_finished(tmp_path):
    frontend = LoadStoreTrace(write(tmp_path, ""), clock_ratio=1)
    assert frontend.is_finished()


def test_pim_frontend_sends_types(tmp_path):
    path = write(tmp_path, "PIM_MAC_AB 0x0\nPIM_BARRIER 0x0\nST 0x20\n")
    frontend = PIMLoadStoreTrace(path, clock_ratio=1)
    memory = FakeMemory()
    frontend.connect_memory_system(memory)
    frontend.tick()
    assert [r.type_id for r in memory.sent] == [
        RequestType.PIM_MAC_AB,
        RequestType.PIM_BARRIER,
        RequestType.Write,
    ]
    assert frontend.is_finished()


def test_readwrite_frontend_cycles_through_trace(tmp_path):
    path = write(tmp_path, "R 0,1\nW 2,3\n")
    frontend = ReadWriteTrace(path, clock_ratio=1)
    memory = FakeMemory()
    frontend.connect_memory_system(memory)
    for _ in range(3):
        frontend.tick()
    assert [r.addr_vec for r in memory.sent] == [[0, 1], [2, 3], [0, 1]]
    # Read entries are issued as writes and write entries as reads.
    assert [r.type_id for r in memory.sent] == [
        RequestType.Write,
        RequestType.Read,
        RequestType.Write,
    ]
    assert frontend.is_finished()


def test_gem5_frontend_forwards_requests():
    frontend = GEM5Frontend()
    memory = FakeMemory()
    frontend.connect_memory_system(memory)
    received = []
    assert frontend.receive_external_requests(RequestType.Write, 0x100, 3, received.append)
    req = memory.sent[0]
    assert (req.addr, req.type_id, req.source_id) == (0x100, RequestType.Write, 3)
    req.callback(req)
    assert received == [req]
    assert frontend.is_finished()


def test_gem5_frontend_reports_rejection():
    frontend = GEM5Frontend()
    memory = FakeMemory(capacity_per_tick=0)
    frontend.connect_memory_system(memory)
    assert frontend.receive_external_requests(RequestType.Read, 0, 0, lambda r: None) is False
    assert memory.sent == []