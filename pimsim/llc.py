"""Last-level cache shared by the cores of the simple out-of-order processor."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional, Union

from .interfaces import Request, RequestType

_log = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class Line:
    """A cache line; ``ready`` is False while its fill is still in flight."""

    addr: int = -1
    tag: int = -1
    dirty: bool = False
    ready: bool = False


def _log2(value: int) -> int:
    return value.bit_length() - 1


class SimpleO3LLC:
    """A set-associative LRU cache with MSHRs and a fixed access latency.

    Each set is a list whose head is the least-recently-used line. The
    memory system needs ``send(req) -> bool``.
    """

    def __init__(
        self,
        latency: int,
        size_bytes: int,
        linesize_bytes: int,
        associativity: int,
        num_mshrs: int,
    ) -> None:
        self.latency = latency
        self.size_bytes = size_bytes
        self.linesize_bytes = linesize_bytes
        self.associativity = associativity
        self.num_mshrs = num_mshrs

        self.set_size = size_bytes // (linesize_bytes * associativity)
        self.index_mask = self.set_size - 1
        self.index_offset = _log2(linesize_bytes)
        self.tag_offset = _log2(self.set_size) + self.index_offset
        _log.debug("Index mask: %x", self.index_mask)
        _log.debug("Index offset: %d", self.index_offset)
        _log.debug("Tag offset: %d", self.tag_offset)

        self.clk = 0
        self.memory_system: Optional[Any] = None
        self.cache_sets: dict[int, list[Line]] = {}
        self.mshrs: list[tuple[int, Line]] = []
        self.receive_requests: dict[int, list[Request]] = {}
        # (cycle at which the request is due, request)
        self._miss_list: list[tuple[int, Request]] = []
        self._hit_list: list[tuple[int, Request]] = []

        self.llc_read_access = 0
        self.llc_write_access = 0
        self.llc_read_misses = 0
        self.llc_write_misses = 0
        self.llc_eviction = 0
        self.llc_mshr_unavailable = 0

    def connect_memory_system(self, memory_system: Any) -> None:
        self.memory_system = memory_system

    def _index(self, addr: int) -> int:
        return (addr >> self.index_offset) & self.index_mask

    def _tag(self, addr: int) -> int:
        return addr >> self.tag_offset

    def _align(self, addr: int) -> int:
        return addr & ~(self.linesize_bytes - 1)

    def _get_set(self, addr: int) -> list[Line]:
        return self.cache_sets.setdefault(self._index(addr), [])

    @staticmethod
    def _remove(cache_set: list[Line], line: Line) -> None:
        for i, candidate in enumerate(cache_set):
            if candidate is line:
                del cache_set[i]
                return

    def tick(self) -> None:
        self.clk += 1

        # Send misses to memory once the cache latency has passed.
        pending, self._miss_list = self._miss_list, []
        kept: list[tuple[int, Request]] = []
        for due, req in pending:
            if self.clk >= due and self.memory_system.send(req):
                continue
            kept.append((due, req))
        self._miss_list = kept + self._miss_list

        # Answer hits once the cache latency has passed.
        pending, self._hit_list = self._hit_list, []
        kept = []
        for due, req in pending:
            if self.clk >= due:
                self.receive_requests[req.addr] = [req]
                if req.callback is not None:
                    req.callback(req)
            else:
                kept.append((due, req))
        self._hit_list = kept + self._hit_list

    def send(self, req: Request) -> bool:
        """Look the request up; False if it cannot be accepted this cycle."""
        req = replace(req, addr_vec=list(req.addr_vec))
        cache_set = self._get_set(req.addr)
        is_write = req.type_id == RequestType.Write

        if req.type_id == RequestType.Read:
            self.llc_read_access += 1
        elif is_write:
            self.llc_write_access += 1

        line = self._check_set_hit(cache_set, req.addr)
        if line is not None:
            _log.debug("[Clk=%d] Addr %d hit.", self.clk, req.addr)
            cache_set.append(Line(req.addr, self._tag(req.addr), line.dirty or is_write, True))
            self._remove(cache_set, line)
            self._hit_list.append((self.clk + self.latency, req))
            return True

        _log.debug("[Clk=%d] Addr %d miss.", self.clk, req.addr)
        if req.type_id == RequestType.Read:
            self.llc_read_misses += 1
        elif is_write:
            self.llc_write_misses += 1

        dirty = is_write
        if is_write:
            req.type_id = RequestType.Read

        mshr = self._check_mshr_hit(req.addr)
        if mshr is not None:
            mshr_addr, mshr_line = mshr
            self.receive_requests.setdefault(mshr_addr, []).append(req)
            mshr_line.dirty = dirty or mshr_line.dirty
            return True

        if len(self.mshrs) == self.num_mshrs:
            self.llc_mshr_unavailable += 1
            return False

        if len(cache_set) >= self.associativity and not any(l.ready for l in cache_set):
            return False

        new_line = self._allocate_line(cache_set, req.addr)
        if new_line is None:
            raise RuntimeError("Failed to allocate new line when there is available entry.")
        new_line.dirty = dirty

        self.mshrs.append((req.addr, new_line))
        self.receive_requests[req.addr] = [req]
        self._miss_list.append((self.clk + self.latency, req))
        return True

    def receive(self, req: Request) -> None:
        """Mark the line filled by a request served by memory as ready."""
        _log.debug("[Clk=%d] Request %d received.", self.clk, req.addr)
        aligned = self._align(req.addr)
        for i, (addr, line) in enumerate(self.mshrs):
            if self._align(addr) == aligned:
                line.ready = True
                del self.mshrs[i]
                return

    def _allocate_line(self, cache_set: list[Line], addr: int) -> Optional[Line]:
        if self._need_eviction(cache_set, addr):
            victim = next((line for line in cache_set if line.ready), None)
            if victim is None:
                return None
            self._evict_line(cache_set, victim)
        line = Line(addr, self._tag(addr))
        cache_set.append(line)
        return line

    def _need_eviction(self, cache_set: list[Line], addr: int) -> bool:
        tag = self._tag(addr)
        if any(line.tag == tag for line in cache_set):
            return False
        return len(cache_set) >= self.associativity

    def _evict_line(self, cache_set: list[Line], victim: Line) -> None:
        _log.debug("Evicting %d.", victim.addr)
        self.llc_eviction += 1
        if victim.dirty:
            writeback = Request(victim.addr, RequestType.Write)
            self._miss_list.append((self.clk + self.latency, writeback))
        self._remove(cache_set, victim)

    def _check_set_hit(self, cache_set: list[Line], addr: int) -> Optional[Line]:
        tag = self._tag(addr)
        line = next((l for l in cache_set if l.tag == tag), None)
        if line is None or not line.ready:
            return None
        return line

    def _check_mshr_hit(self, addr: int) -> Optional[tuple[int, Line]]:
        aligned = self._align(addr)
        return next((e for e in self.mshrs if self._align(e[0]) == aligned), None)

    def serialize(self, filename: PathLike) -> None:
        """Write the cache contents as CSV with columns index, addr, tag, dirty."""
        with open(filename, "w") as out:
            out.write("index,addr,tag,dirty\n")
            for index, lines in self.cache_sets.items():
                for line in lines:
                    out.write(f"{index},{line.addr},{line.tag},{int(line.dirty)}\n")

    def deserialize(self, filename: PathLike) -> None:
        """Load ready lines from a CSV written by :meth:`serialize`."""
        with open(filename) as src:
            next(src, None)
            for text in src:
                text = text.strip()
                if not text:
                    continue
                index, addr, tag, dirty = text.split(",")[:4]
                self.cache_sets.setdefault(int(index), []).append(
                    Line(int(addr), int(tag), bool(int(dirty)), True)
                )

    def dump_llc(self) -> None:
        """Print the cache contents to standard output."""
        print("Dumping LLC")
        print("index,addr,tag,dirty,ready")
        for index, lines in self.cache_sets.items():
            for line in lines:
                print(f"{index},{line.addr},{line.tag},{int(line.dirty)},{int(line.ready)}")