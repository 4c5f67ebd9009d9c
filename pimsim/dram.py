"""A DRAM device model built from a specification and a tree of nodes."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional

from .node import DRAMNode
from .spec import DRAMCommandMeta, Organization, SpecDef, SpecLUT, TimingConsEntry

FuncMatrix = list[list[Optional[Callable[..., Any]]]]


@dataclass(eq=False)
class DRAMDevice:
    """A clocked DRAM device holding its specification and channel nodes."""

    levels: SpecDef
    commands: SpecDef
    states: SpecDef
    organization: Organization
    init_states: SpecLUT
    command_scopes: SpecLUT
    timing_cons: list[list[list[TimingConsEntry]]]
    actions: FuncMatrix = field(default_factory=list)
    preqs: FuncMatrix = field(default_factory=list)
    rowhits: FuncMatrix = field(default_factory=list)
    command_meta: Optional[SpecLUT] = None
    requests: SpecDef = field(default_factory=SpecDef)
    request_translations: Optional[SpecLUT] = None
    timings: SpecDef = field(default_factory=SpecDef)
    timing_vals: Optional[SpecLUT] = None
    internal_prefetch_size: int = -1
    channel_width: int = -1
    read_latency: int = -1
    clk: int = 0
    channels: list[DRAMNode] = field(init=False, default_factory=list)
    notifications: dict[str, int] = field(init=False, default_factory=dict)

    def __post_init__(self) -> None:
        self.actions = self._complete(self.actions)
        self.preqs = self._complete(self.preqs)
        self.rowhits = self._complete(self.rowhits)
        if self.command_meta is None:
            self.command_meta = SpecLUT(
                self.commands, [DRAMCommandMeta() for _ in self.commands]
            )
        if self.request_translations is None:
            self.request_translations = SpecLUT(self.requests)
        if self.timing_vals is None:
            self.timing_vals = SpecLUT(self.timings)

        self._channel_level = self.levels.index("channel")
        num_channels = self.organization.count[self._channel_level]
        self.channels = [
            DRAMNode(self, None, self._channel_level, i) for i in range(num_channels)
        ]

    def _complete(self, matrix: FuncMatrix) -> FuncMatrix:
        rows = [list(row) for row in matrix]
        rows.extend([] for _ in range(len(self.levels) - len(rows)))
        return [row + [None] * (len(self.commands) - len(row)) for row in rows]

    def _channel(self, addr_vec: Sequence[int]) -> DRAMNode:
        return self.channels[addr_vec[self._channel_level]]

    def issue_command(self, command: int, addr_vec: Sequence[int]) -> None:
        """Issue a command, updating the timing and states of the involved nodes."""
        channel = self._channel(addr_vec)
        channel.update_timing(command, addr_vec, self.clk)
        channel.update_states(command, addr_vec, self.clk)

    def get_preq_command(self, command: int, addr_vec: Sequence[int]) -> int:
        """Return the command that must be issued before the given one can be."""
        return self._channel(addr_vec).get_preq_command(command, addr_vec, self.clk)

    def check_ready(self, command: int, addr_vec: Sequence[int]) -> bool:
        """Whether the device accepts the command in the current cycle."""
        return self._channel(addr_vec).check_ready(command, addr_vec, self.clk)

    def check_rowbuffer_hit(self, command: int, addr_vec: Sequence[int]) -> bool:
        """Whether the command hits an opened row buffer."""
        return self._channel(addr_vec).check_rowbuffer_hit(command, addr_vec, self.clk)

    def notify(self, key: str, value: int) -> None:
        """Record a configuration change requested by the host."""
        self.notifications[key] = value

    def tick(self) -> None:
        self.clk += 1

    def get_level_size(self, name: str) -> int:
        """Size of the named level, or -1 if the device has no such level."""
        try:
            level = self.levels.index(name)
        except KeyError:
            return -1
        return self.organization.count[level]