"""Requests and the interfaces shared by frontends, memory systems and translations."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml


class ConfigurationError(Exception):
    """The simulated system was configured with invalid or missing settings."""


class RequestType(enum.IntEnum):
    """Kinds of memory requests; values match the codes of PIM load/store traces."""

    Read = 0
    Write = 1
    PIM_MAC_AB = 4
    PIM_MAC_SB = 5
    PIM_MAC_PB = 6
    PIM_WR_GB = 7
    PIM_MV_SB = 8
    PIM_MV_GB = 9
    PIM_SFM = 10
    PIM_SET_MODEL = 11
    PIM_SET_HEAD = 12
    PIM_BARRIER = 13


@dataclass
class Request:
    """A memory request travelling from a frontend to the memory system."""

    addr: int
    type_id: int
    source_id: int = -1
    callback: Optional[Callable[[Request], Any]] = None
    addr_vec: list[int] = field(default_factory=list)
    arrive: int = -1
    depart: int = -1


def _emit_stats(stats: dict[str, Any]) -> None:
    print(yaml.safe_dump(stats, sort_keys=False, default_flow_style=False), end="")


class FrontEnd(ABC):
    """The frontend that drives the simulation."""

    def __init__(self, clock_ratio: int = 1) -> None:
        self.clock_ratio = clock_ratio
        self.memory_system: Optional[MemorySystem] = None

    def connect_memory_system(self, memory_system: MemorySystem) -> None:
        self.memory_system = memory_system

    @abstractmethod
    def tick(self) -> None:
        """Advance the frontend by one of its cycles."""

    @abstractmethod
    def is_finished(self) -> bool:
        """Whether the frontend has nothing more to do."""

    def stats(self) -> dict[str, Any]:
        """Statistics gathered by this frontend, by name."""
        return {}

    def finalize(self) -> None:
        """Print the statistics as a YAML map."""
        _emit_stats(self.stats())

    def get_num_cores(self) -> int:
        return 1

    def receive_external_requests(
        self,
        req_type: int,
        addr: int,
        source_id: int,
        callback: Callable[[Request], Any],
    ) -> bool:
        """Accept a request from an external source; unsupported by default."""
        return False


class MemorySystem(ABC):
    """Communicates between the processor and the memory controllers."""

    def __init__(self, clock_ratio: int = 1) -> None:
        self.clock_ratio = clock_ratio
        self.frontend: Optional[FrontEnd] = None

    def connect_frontend(self, frontend: FrontEnd) -> None:
        self.frontend = frontend

    @abstractmethod
    def send(self, req: Request) -> bool:
        """Try to send a request; False if it was rejected (e.g. queues full)."""

    @abstractmethod
    def tick(self) -> None:
        """Advance the memory system by one of its cycles."""

    @abstractmethod
    def is_pending(self) -> bool:
        """Whether requests are still being served."""

    def get_tck(self) -> float:
        """Clock period in nanoseconds, or -1.0 if unknown."""
        return -1.0

    def stats(self) -> dict[str, Any]:
        """Statistics gathered by this memory system, by name."""
        return {}

    def finalize(self) -> None:
        """Print the statistics as a YAML map."""
        _emit_stats(self.stats())


class Translation(ABC):
    """Translates virtual addresses to physical addresses."""

    @abstractmethod
    def translate(self, req: Request) -> bool:
        """Translate the address of the request in place."""

    def reserve(self, kind: str, addr: int) -> bool:
        """Reserve an address for the given purpose; unsupported by default."""
        return False

    def get_max_addr(self) -> int:
        """The largest physical address."""
        return 0