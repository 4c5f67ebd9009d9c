"""Prerequisite, row-hit and row-open checks evaluated on DRAM nodes.

Every function takes ``(node, cmd, target_id, clk)``. Prerequisite functions
return the command that must be issued next (``cmd`` itself when nothing is
required); row-hit and row-open functions return a bool.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any


class InvalidBankStateError(Exception):
    """A bank is in a state that is neither opened nor closed."""


def _state(node: Any, name: str) -> int:
    return node.spec.states.index(name)


def _command(node: Any, name: str) -> int:
    return node.spec.commands.index(name)


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


def _invalid(scope: str) -> InvalidBankStateError:
    return InvalidBankStateError(f"[{scope}] Invalid bank state for an RD/WR command!")


def _rows_open(banks: Iterator[Any], node: Any, cmd: int, target_id: int,
               activate: str, precharge: str) -> int:
    closed = _state(node, "Closed")
    opened = _state(node, "Opened")
    for bank in banks:
        if bank.state == closed:
            return _command(node, activate)
        if bank.state == opened:
            if target_id in bank.row_state:
                continue
            return _command(node, precharge)
        raise _invalid("Preq::Bank")
    return cmd


def _any_open(banks: Iterator[Any], node: Any) -> bool:
    closed = _state(node, "Closed")
    return any(bank.state != closed for bank in banks)


# Bank level

def bank_require_row_open(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """ACT if the bank is closed, PRE if another row is open, else the command."""
    if node.state == _state(node, "Closed"):
        return _command(node, "ACT")
    if node.state == _state(node, "Opened"):
        return cmd if target_id in node.row_state else _command(node, "PRE")
    raise _invalid("Preq::Bank")


def bank_require_bank_closed(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """PRE if the bank is open, else the command."""
    if node.state == _state(node, "Closed"):
        return cmd
    if node.state == _state(node, "Opened"):
        return _command(node, "PRE")
    raise _invalid("Preq::Bank")


def bank_require_all_banks_row_open(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """ACTAB or PREA until every bank in the channel has the target row open."""
    if _depth(node, "channel") != 4:
        return cmd
    banks = _descendants(_ancestor(node, 4), 4)
    return _rows_open(banks, node, cmd, target_id, "ACTAB", "PREA")


def bank_require_pim_same_banks_row_open(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """ACTSB or PRESB until every same-id bank in the channel has the row open."""
    if _depth(node, "channel") != 4:
        return cmd
    banks = (
        b for b in _descendants(_ancestor(node, 4), 4) if b.node_id == node.node_id
    )
    return _rows_open(banks, node, cmd, target_id, "ACTSB", "PRESB")


def bank_require_pim_per_banks_row_open(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """ACTPB or PREPB until the banks at this position in every pseudo channel have the row open."""
    if _depth(node, "channel") != 4:
        return cmd
    bank_group = node.parent
    rank_id = bank_group.parent.node_id

    def banks() -> Iterator[Any]:
        for pch in _ancestor(node, 4).children:
            for rank in pch.children:
                if rank.node_id != rank_id:
                    continue
                for bg in rank.children:
                    if bg.node_id != bank_group.node_id:
                        continue
                    yield from (b for b in bg.children if b.node_id == node.node_id)

    return _rows_open(banks(), node, cmd, target_id, "ACTPB", "PREPB")


# Rank level

def rank_require_all_banks_closed(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """PREA if any bank in this rank is open, else the command."""
    depth = _depth(node, "rank")
    if depth in (1, 2) and _any_open(_descendants(node, depth), node):
        return _command(node, "PREA")
    return cmd


def rank_require_same_banks_closed(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """PREsb if any bank in the parent rank with the target id is open, else the command."""
    closed = _state(node, "Closed")
    all_closed = all(
        bank.state == closed
        for bg in node.parent.children
        for bank in bg.children
        if bank.node_id == target_id
    )
    return cmd if all_closed else _command(node, "PREsb")


# Channel level

def channel_require_all_banks_closed(node: Any, cmd: int, target_id: int, clk: int) -> int:
    """PREA if any bank in this channel is open, else the command."""
    depth = _depth(node, "channel")
    if depth in (2, 3, 4) and _any_open(_descendants(node, depth), node):
        return _command(node, "PREA")
    return cmd


# Row-buffer checks

def rowhit_bank_rdwr(node: Any, cmd: int, target_id: int, clk: int) -> bool:
    """Whether the target row is open in this bank."""
    if node.state == _state(node, "Closed"):
        return False
    if node.state == _state(node, "Opened"):
        return target_id in node.row_state
    raise _invalid("RowHit::Bank")


def rowopen_bank_rdwr(node: Any, cmd: int, target_id: int, clk: int) -> bool:
    """Whether any row is open in this bank."""
    if node.state == _state(node, "Closed"):
        return False
    if node.state == _state(node, "Opened"):
        return True
    raise _invalid("RowHit::Bank")