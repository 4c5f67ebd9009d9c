"""A node in the hierarchy of a DRAM device, tracking state and timing."""

from __future__ import annotations

from collections import deque
from collections.abc import Sequence
from typing import Any


class DRAMNode:
    """One node of the organization tree (channel, rank, bank, ...).

    The spec object supplies ``commands``, ``levels``, ``organization``,
    ``timing_cons``, ``init_states``, ``command_scopes`` and the
    ``actions``/``preqs``/``rowhits`` function matrices indexed by
    [level][command].
    """

    def __init__(self, spec: Any, parent: DRAMNode | None, level: int, node_id: int) -> None:
        self.spec = spec
        self.parent = parent
        self.level = level
        self.node_id = node_id
        self.size = -1
        self.children: list[DRAMNode] = []
        self.row_state: dict[int, int] = {}

        self.cmd_ready_clk = [-1] * len(spec.commands)
        self.cmd_history: list[deque[int]] = []
        for constraints in spec.timing_cons[level]:
            window = max((t.window for t in constraints), default=0)
            self.cmd_history.append(deque([-1] * window, maxlen=window))

        self.state = spec.init_states[level]

        next_level = level + 1
        if next_level == spec.levels.index("row"):
            return
        next_size = spec.organization.count[next_level]
        self.children = [
            type(self)(spec, self, next_level, i) for i in range(next_size)
        ]

    def update_states(self, command: int, addr_vec: Sequence[int], clk: int) -> None:
        child_id = addr_vec[self.level + 1]
        action = self.spec.actions[self.level][command]
        if action is not None:
            action(self, command, child_id, clk)
        if self.level == self.spec.command_scopes[command] or not self.children:
            return
        self.children[child_id].update_states(command, addr_vec, clk)

    def update_timing(self, command: int, addr_vec: Sequence[int], clk: int) -> None:
        constraints = self.spec.timing_cons[self.level][command]

        if self.node_id != addr_vec[self.level]:
            for t in constraints:
                if t.sibling:
                    self.cmd_ready_clk[t.cmd] = max(self.cmd_ready_clk[t.cmd], clk + t.val)
            return

        history = self.cmd_history[command]
        if history:
            history.appendleft(clk)

        for t in constraints:
            if t.sibling or t.window < 1:
                continue
            past = history[t.window - 1]
            if past < 0:
                continue
            self.cmd_ready_clk[t.cmd] = max(self.cmd_ready_clk[t.cmd], past + t.val)

        for child in self.children:
            child.update_timing(command, addr_vec, clk)

    def get_preq_command(self, command: int, addr_vec: Sequence[int], clk: int) -> int:
        child_id = addr_vec[self.level + 1]
        preq = self.spec.preqs[self.level][command]
        if preq is not None:
            preq_cmd = preq(self, command, child_id, clk)
            if preq_cmd != -1:
                return preq_cmd
        if child_id < 0 or not self.children:
            return command
        return self.children[child_id].get_preq_command(command, addr_vec, clk)

    def check_ready(self, command: int, addr_vec: Sequence[int], clk: int) -> bool:
        ready_at = self.cmd_ready_clk[command]
        if ready_at != -1 and clk < ready_at:
            return False
        child_id = addr_vec[self.level + 1]
        if (
            child_id < 0
            or self.level == self.spec.command_scopes[command]
            or not self.children
        ):
            return True
        return self.children[child_id].check_ready(command, addr_vec, clk)

    def check_rowbuffer_hit(self, command: int, addr_vec: Sequence[int], clk: int) -> bool:
        child_id = addr_vec[self.level + 1]
        rowhit = self.spec.rowhits[self.level][command]
        if rowhit is not None:
            return bool(rowhit(self, command, child_id, clk))
        if child_id < 0 or not self.children:
            return False
        return self.children[child_id].check_rowbuffer_hit(command, addr_vec, clk)

    def __repr__(self) -> str:
        return f"DRAMNode(level={self.level}, id={self.node_id}, state={self.state})"