"""Frontends that replay memory traces, and a wrapper for an external simulator."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from pathlib import Path
from typing import Any, Union

from .interfaces import ConfigurationError, FrontEnd, Request, RequestType

_log = logging.getLogger(__name__)

PathLike = Union[str, Path]
TraceEntry = tuple[RequestType, int]

_LOADSTORE_OPCODES: dict[str, RequestType] = {
    "LD": RequestType.Read,
    "ST": RequestType.Write,
}

_PIM_OPCODES: dict[str, RequestType] = {
    **_LOADSTORE_OPCODES,
    "PIM_MAC_AB": RequestType.PIM_MAC_AB,
    "PIM_MAC_SB": RequestType.PIM_MAC_SB,
    "PIM_MAC_PB": RequestType.PIM_MAC_PB,
    "PIM_WR_GB": RequestType.PIM_WR_GB,
    "PIM_MV_SB": RequestType.PIM_MV_SB,
    "PIM_MV_GB": RequestType.PIM_MV_GB,
    "PIM_SFM": RequestType.PIM_SFM,
    "PIM_SET_MODEL": RequestType.PIM_SET_MODEL,
    "PIM_SET_HEAD": RequestType.PIM_SET_HEAD,
    "PIM_BARRIER": RequestType.PIM_BARRIER,
}


def parse_address(token: str) -> int:
    """Parse an address written in hexadecimal (0x/0X prefix) or decimal."""
    if token[:2] in ("0x", "0X"):
        return int(token[2:], 16)
    return int(token)


def _token_lines(path: PathLike) -> Iterator[list[str]]:
    trace_path = Path(path)
    if not trace_path.exists():
        raise ConfigurationError(f"Trace {path} does not exist!")
    try:
        trace_file = trace_path.open()
    except OSError as exc:
        raise ConfigurationError(f"Trace {path} cannot be opened!") from exc
    with trace_file:
        for line in trace_file:
            yield line.split()


def _read_typed_trace(path: PathLike, opcodes: Mapping[str, RequestType]) -> list[TraceEntry]:
    entries: list[TraceEntry] = []
    for tokens in _token_lines(path):
        if len(tokens) != 2 or tokens[0] not in opcodes:
            raise ConfigurationError(f"Trace {path} format invalid!")
        entries.append((opcodes[tokens[0]], parse_address(tokens[1])))
    return entries


def read_loadstore_trace(path: PathLike) -> list[TraceEntry]:
    """Read lines of ``LD|ST <addr>`` as (request type, address) pairs."""
    return _read_typed_trace(path, _LOADSTORE_OPCODES)


def read_pim_loadstore_trace(path: PathLike) -> list[TraceEntry]:
    """Read lines of ``<LD|ST|PIM_...> <addr>`` as (request type, address) pairs."""
    return _read_typed_trace(path, _PIM_OPCODES)


def read_readwrite_trace(path: PathLike) -> list[tuple[bool, list[int]]]:
    """Read lines of ``R|W <a,b,c,...>`` as (is_write, address vector) pairs."""
    entries: list[tuple[bool, list[int]]] = []
    for tokens in _token_lines(path):
        if len(tokens) != 2 or tokens[0] not in ("R", "W"):
            raise ConfigurationError(f"Trace {path} format invalid!")
        addr_vec = [int(part) for part in tokens[1].split(",") if part]
        entries.append((tokens[0] == "W", addr_vec))
    return entries


class _RequestTraceFrontEnd(FrontEnd):
    """Sends every trace entry once, as many per tick as the memory system accepts."""

    def __init__(
        self,
        path: PathLike,
        clock_ratio: int,
        reader: Callable[[PathLike], list[TraceEntry]],
    ) -> None:
        super().__init__(clock_ratio)
        _log.info("Loading trace file %s ...", path)
        self._trace = reader(path)
        _log.info("Loaded %d lines.", len(self._trace))
        self._index = 0
        self.trace_count = 0

    def tick(self) -> None:
        while not self.is_finished():
            req_type, addr = self._trace[self._index]
            if not self.memory_system.send(Request(addr, req_type)):
                break
            self._index = (self._index + 1) % len(self._trace)
            self.trace_count += 1

    def is_finished(self) -> bool:
        return self.trace_count >= len(self._trace)


class LoadStoreTrace(_RequestTraceFrontEnd):
    """Replays a load/store memory address trace."""

    def __init__(self, path: PathLike, clock_ratio: int) -> None:
        super().__init__(path, clock_ratio, read_loadstore_trace)

    def tick(self) -> None:
        super().tick()

    def is_finished(self) -> bool:
        return super().is_finished()


class PIMLoadStoreTrace(_RequestTraceFrontEnd):
    """Replays a trace of loads, stores and PIM requests."""

    def __init__(self, path: PathLike, clock_ratio: int) -> None:
        super().__init__(path, clock_ratio, read_pim_loadstore_trace)

    def tick(self) -> None:
        super().tick()

    def is_finished(self) -> bool:
        return super().is_finished()


class ReadWriteTrace(FrontEnd):
    """Replays a trace of DRAM address vectors, one request per tick, forever."""

    def __init__(self, path: PathLike, clock_ratio: int) -> None:
        super().__init__(clock_ratio)
        _log.info("Loading trace file %s ...", path)
        self._trace = read_readwrite_trace(path)
        _log.info("Loaded %d lines.", len(self._trace))
        self._index = 0

    def tick(self) -> None:
        is_write, addr_vec = self._trace[self._index]
        # Reads in the trace are issued as writes and vice versa.
        req_type = RequestType.Read if is_write else RequestType.Write
        self.memory_system.send(Request(-1, req_type, addr_vec=list(addr_vec)))
        self._index = (self._index + 1) % len(self._trace)

    def is_finished(self) -> bool:
        return True


class GEM5Frontend(FrontEnd):
    """Forwards requests coming from an external full-system simulator."""

    def tick(self) -> None:
        pass

    def is_finished(self) -> bool:
        return True

    def receive_external_requests(
        self,
        req_type: int,
        addr: int,
        source_id: int,
        callback: Callable[[Request], Any],
    ) -> bool:
        return self.memory_system.send(Request(addr, req_type, source_id, callback))