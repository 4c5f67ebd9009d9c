"""State-changing actions applied to DRAM nodes when commands are issued.

Every action takes ``(node, cmd, target_id, clk)``, where ``node`` is the
node at the level the action is registered for and ``target_id`` is the id
of the addressed child (for bank-level actions, the row).
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any


class UnsupportedOrganizationError(Exception):
    """The device organization has no built-in action for this command."""


def _state(node: Any, name: str) -> int:
    return node.spec.states.index(name)


def _depth(node: Any, upper: str) -> int:
    levels = node.spec.levels
    return levels.index("bank") - levels.index(upper)


def _descendants(node: Any, depth: int) -> Iterator[Any]:
    if depth == 0:
        yield node
        return
    for child in node.children:
        yield from _descendants(child, depth - 1)


def _ancestor(node: Any, hops: int) -> Any:
    for _ in range(hops):
        node = node.parent
    return node


def _open(bank: Any, row: int) -> None:
    opened = _state(bank, "Opened")
    bank.state = opened
    bank.row_state[row] = opened


def _close(bank: Any) -> None:
    bank.state = _state(bank, "Closed")
    bank.row_state.clear()


def _require_channel_depth_four(node: Any, scope: str, name: str) -> None:
    if _depth(node, "channel") != 4:
        raise UnsupportedOrganizationError(
            f"[Action::{scope}] Unsupported organization. "
            f"Please write your own {name} function."
        )


def _same_position_banks(bank: Any) -> Iterator[Any]:
    """Banks in every pseudo channel sharing this bank's rank, group and bank id."""
    bank_group = bank.parent
    rank_id = bank_group.parent.node_id
    channel = _ancestor(bank, 4)
    for pch in channel.children:
        for rank in pch.children:
            if rank.node_id != rank_id:
                continue
            for bg in rank.children:
                if bg.node_id != bank_group.node_id:
                    continue
                yield from (b for b in bg.children if b.node_id == bank.node_id)


# Bank level

def bank_act(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Open the target row in this bank."""
    _open(node, target_id)


def bank_pre(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close this bank."""
    _close(node)


def bank_actab(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Open the target row in every bank of the channel."""
    _require_channel_depth_four(node, "Bank", "ACTAB")
    for bank in _descendants(_ancestor(node, 4), 4):
        _open(bank, target_id)


def bank_actsb(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Open the target row in every bank of the channel with this bank's id."""
    _require_channel_depth_four(node, "Bank", "ACTSB")
    for bank in _descendants(_ancestor(node, 4), 4):
        if bank.node_id == node.node_id:
            _open(bank, target_id)


def bank_actpb(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Open the target row in the banks at this position in every pseudo channel."""
    _require_channel_depth_four(node, "Bank", "ACTPB")
    for bank in _same_position_banks(node):
        _open(bank, target_id)


def bank_presb(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close the banks at this position in every pseudo channel."""
    _require_channel_depth_four(node, "Bank", "PREPB")
    for bank in _same_position_banks(node):
        _close(bank)


def bank_pre_same_bank(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close every bank in this rank with this bank's id."""
    rank = _ancestor(node, 2)
    for bg in rank.children:
        for bank in bg.children:
            if bank.node_id == node.node_id:
                _close(bank)


def bank_prepb(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close the banks at this position in every pseudo channel."""
    _require_channel_depth_four(node, "Bank", "ACTPB")
    for bank in _same_position_banks(node):
        _close(bank)


# Bank-group level

def bank_group_pre_same_bank(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close every bank in the parent rank whose id is the target id."""
    for bg in node.parent.children:
        for bank in bg.children:
            if bank.node_id == target_id:
                _close(bank)


def _same_bank_addr(node: Any, target_id: int) -> list[int]:
    levels = node.spec.levels
    addr = [-1] * len(levels)
    addr[levels.index("bank")] = target_id
    return addr


def bank_group_same_bank_actions(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Update the timing of every bank in the parent rank whose id is the target id."""
    addr = _same_bank_addr(node, target_id)
    for bg in node.parent.children:
        for bank in bg.children:
            if bank.node_id == target_id:
                bank.update_timing(cmd, addr, clk)


def bank_group_pim_same_bank_actions(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Update the timing of every bank in the channel whose id is the target id."""
    addr = _same_bank_addr(node, target_id)
    for bank in _descendants(_ancestor(node, 3), 4):
        if bank.node_id == target_id:
            bank.update_timing(cmd, addr, clk)


def bank_group_pim_per_bank_actions(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Update the timing of the target banks across pseudo channels (broadcast).

    Ranks are matched against the id of this group's pseudo channel and bank
    groups against the id of this group's rank.
    """
    addr = _same_bank_addr(node, target_id)
    rank_match = node.parent.parent.node_id
    bg_match = node.parent.node_id
    for pch in _ancestor(node, 3).children:
        for rank in pch.children:
            if rank.node_id != rank_match:
                continue
            for bg in rank.children:
                if bg.node_id != bg_match:
                    continue
                for bank in bg.children:
                    if bank.node_id == target_id:
                        bank.update_timing(cmd, addr, clk)


# Rank level

def rank_prea(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close every bank in this rank."""
    depth = _depth(node, "rank")
    if depth not in (1, 2):
        raise UnsupportedOrganizationError(
            "[Action::Rank] Unsupported organization. Please write your own PREA function."
        )
    for bank in _descendants(node, depth):
        _close(bank)


def rank_pre_same_bank(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close every bank in this rank whose id is the target id."""
    for bg in node.children:
        for bank in bg.children:
            if bank.node_id == target_id:
                _close(bank)


# Channel level

def channel_prea(node: Any, cmd: int, target_id: int, clk: int) -> None:
    """Close every bank in this channel."""
    depth = _depth(node, "channel")
    if depth not in (2, 3, 4):
        raise UnsupportedOrganizationError(
            "[Action::Rank] Unsupported organization. Please write your own PREA function."
        )
    for bank in _descendants(node, depth):
        _close(bank)