"""A simple out-of-order core driven by an LLC-filtered instruction trace."""

from __future__ import annotations

from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .interfaces import ConfigurationError, Request, RequestType, Translation

PathLike = Union[str, Path]


@dataclass(frozen=True)
class Inst:
    """One trace line: non-memory instructions, then a load and an optional writeback."""

    bubble_count: int = 0
    load_addr: int = -1
    store_addr: int = -1


class SimpleO3Trace:
    """Filtered trace in the format ``<num_non_memory_insts> <load_addr> [writeback_addr]``.

    Only requests reaching the LLC are recorded; the writeback is the eviction
    from the upper caches caused by the load.
    """

    def __init__(self, path: PathLike) -> None:
        trace_path = Path(path)
        if not trace_path.exists():
            raise ConfigurationError(f"Trace {path} does not exist!")
        try:
            trace_file = trace_path.open()
        except OSError as exc:
            raise ConfigurationError(f"Trace {path} cannot be opened!") from exc

        self.insts: list[Inst] = []
        with trace_file:
            for line in trace_file:
                tokens = line.split()
                if len(tokens) not in (2, 3):
                    raise ConfigurationError(f"Trace {path} format invalid!")
                store_addr = int(tokens[2]) if len(tokens) == 3 else -1
                self.insts.append(Inst(int(tokens[0]), int(tokens[1]), store_addr))
        self._index = 0

    def __len__(self) -> int:
        return len(self.insts)

    def get_next_inst(self) -> Inst:
        """Return the next instruction, wrapping around at the end of the trace."""
        inst = self.insts[self._index]
        self._index = (self._index + 1) % len(self.insts)
        return inst


@dataclass
class _Slot:
    ready: bool
    addr: int


class InstWindow:
    """A simplified reorder buffer: instructions retire in order once ready."""

    def __init__(self, ipc: int = 4, depth: int = 128) -> None:
        self.ipc = ipc
        self.depth = depth
        self._slots: deque[_Slot] = deque()

    def __len__(self) -> int:
        return len(self._slots)

    def is_full(self) -> bool:
        return len(self._slots) >= self.depth

    def insert(self, ready: bool, addr: int) -> None:
        """Insert an instruction; non-memory ones are ready with address -1."""
        self._slots.append(_Slot(ready, addr))

    def retire(self) -> int:
        """Retire up to ``ipc`` ready instructions from the oldest end."""
        retired = 0
        while self._slots and retired < self.ipc and self._slots[0].ready:
            self._slots.popleft()
            retired += 1
        return retired

    def set_ready(self, addr: int) -> None:
        """Mark every in-flight memory instruction to ``addr`` as ready."""
        for slot in self._slots:
            if slot.addr == addr:
                slot.ready = True


class SimpleO3Core:
    """A core issuing trace instructions into its window and memory requests to the LLC.

    The LLC needs ``send(req) -> bool``.
    """

    def __init__(
        self,
        core_id: int,
        ipc: int,
        depth: int,
        num_expected_insts: int,
        trace_path: PathLike,
        translation: Translation,
        llc: Any,
        callback: Optional[Callable[[Request], Any]] = None,
    ) -> None:
        self.core_id = core_id
        self.trace = SimpleO3Trace(trace_path)
        self.window = InstWindow(ipc, depth)
        self.num_expected_insts = num_expected_insts
        self.translation = translation
        self.llc = llc
        self.callback = callback

        self.clk = 0
        self._last_mem_cycle = 0

        self.reached_expected_num_insts = False
        self.insts_retired = 0
        self.cycles_recorded = 0
        self.mem_access_cycles = 0

        self._fetch()

    def _fetch(self) -> None:
        inst = self.trace.get_next_inst()
        self._num_bubbles = inst.bubble_count
        self._load_addr = inst.load_addr
        self._writeback_addr = inst.store_addr

    def tick(self) -> None:
        self.clk += 1

        self.insts_retired += self.window.retire()
        if not self.reached_expected_num_insts and self.insts_retired >= self.num_expected_insts:
            self.reached_expected_num_insts = True
            self.cycles_recorded = self.clk

        # Non-memory instructions first.
        inserted = 0
        while self._num_bubbles > 0:
            if inserted == self.window.ipc or self.window.is_full():
                return
            self.window.insert(True, -1)
            inserted += 1
            self._num_bubbles -= 1

        # Then the load.
        if self._load_addr != -1:
            if inserted == self.window.ipc or self.window.is_full():
                return
            load = Request(self._load_addr, RequestType.Read, self.core_id, self.callback)
            if not self.translation.translate(load):
                return
            if not self.llc.send(load):
                return
            self.window.insert(False, load.addr)
            self._load_addr = -1
            if self._writeback_addr != -1:
                # The writeback goes out in the next cycle.
                return

        # Then the writeback.
        if self._writeback_addr != -1:
            writeback = Request(
                self._writeback_addr, RequestType.Write, self.core_id, self.callback
            )
            if not self.translation.translate(writeback):
                return
            if not self.llc.send(writeback):
                return

        self._fetch()

    def receive(self, req: Request) -> None:
        """Handle a request served by memory."""
        self.window.set_ready(req.addr)
        if req.arrive != -1 and req.depart > self._last_mem_cycle:
            if not self.reached_expected_num_insts:
                self.mem_access_cycles += req.depart - max(self._last_mem_cycle, req.arrive)
                self._last_mem_cycle = req.depart