import pytest

from pimsim.dram import DRAMDevice
from pimsim.spec import (
    Organization,
    SpecDef,
    TimingConsInitializer,
    build_lut,
    populate_timingcons,
)

LEVELS = SpecDef(["channel", "rank", "bank", "row", "column"])
COMMANDS = SpecDef(["ACT", "PRE", "RD", "WR"])
STATES = SpecDef(["Opened", "Closed", "N/A"])

ACT = COMMANDS.index("ACT")
PRE = COMMANDS.index("PRE")
RD = COMMANDS.index("RD")
OPENED = STATES.index("Opened")
CLOSED = STATES.index("Closed")


def _act(node, cmd, target_id, clk):
    node.state = OPENED
    node.row_state[target_id] = OPENED


def _pre(node, cmd, target_id, clk):
    node.state = CLOSED
    node.row_state.clear()


def _require_row_open(node, cmd, target_id, clk):
    if node.state == CLOSED:
        return ACT
    return cmd if target_id in node.row_state else PRE


def _rowhit(node, cmd, target_id, clk):
    return node.state == OPENED and target_id in node.row_state


def _matrix(entries):
    matrix = [[None] * len(COMMANDS) for _ in LEVELS]
    for (level, cmd), func in entries.items():
        matrix[LEVELS.index(level)][COMMANDS.index(cmd)] = func
    return matrix


def make_device(**overrides):
    kwargs = dict(
        levels=LEVELS,
        commands=COMMANDS,
        states=STATES,
        organization=Organization(count=[2, 2, 2, 8, 16]),
        init_states=build_lut(
            LEVELS,
            {"channel": "N/A", "rank": "N/A", "bank": "Closed", "row": "Closed", "column": "N/A"},
            STATES,
        ),
        command_scopes=build_lut(
            COMMANDS, {"ACT": "row", "PRE": "bank", "RD": "column", "WR": "column"}, LEVELS
        ),
        timing_cons=populate_timingcons(
            LEVELS, COMMANDS, [TimingConsInitializer("bank", ["ACT"], ["RD", "WR"], 3)]
        ),
        actions=_matrix({("bank", "ACT"): _act, ("bank", "PRE"): _pre}),
        preqs=_matrix({("bank", "RD"): _require_row_open}),
        rowhits=_matrix({("bank", "RD"): _rowhit}),
    )
    kwargs.update(overrides)
    return DRAMDevice(**kwargs)


ADDR = [1, 0, 1, 5, 0]


def test_channels_built():
    device = make_device()
    assert [c.node_id for c in device.channels] == [0, 1]
    assert all(c.parent is None for c in device.channels)


@pytest.mark.parametrize("name, size", [("channel", 2), ("rank", 2), ("bank", 2), ("row", 8)])
def test_get_level_size(name, size):
    assert make_device().get_level_size(name) == size


def test_get_level_size_unknown():
    assert make_device().get_level_size("bankgroup") == -1


def test_issue_and_ready_over_ticks():
    device = make_device()
    device.issue_command(ACT, ADDR)
    assert device.check_ready(RD, ADDR) is False
    for _ in range(3):
        device.tick()
    assert device.clk == 3
    assert device.check_ready(RD, ADDR) is True


def test_preq_and_rowhit_through_device():
    device = make_device()
    assert device.get_preq_command(RD, ADDR) == ACT
    assert device.check_rowbuffer_hit(RD, ADDR) is False
    device.issue_command(ACT, ADDR)
    assert device.get_preq_command(RD, ADDR) == RD
    assert device.check_rowbuffer_hit(RD, ADDR) is True
    device.issue_command(PRE, ADDR)
    assert device.get_preq_command(RD, ADDR) == ACT


def test_channels_are_independent():
    device = make_device()
    device.issue_command(ACT, ADDR)
    other = [0, 0, 1, 5, 0]
    assert device.get_preq_command(RD, other) == ACT
    assert device.check_ready(RD, other) is True


def test_missing_function_matrices_are_filled():
    device = make_device(actions=[], preqs=[], rowhits=[])
    assert len(device.preqs) == len(LEVELS)
    assert all(len(row) == len(COMMANDS) for row in device.actions)
    assert device.get_preq_command(RD, ADDR) == RD
    assert device.check_rowbuffer_hit(RD, ADDR) is False


def test_default_tables_and_values():
    device = make_device()
    assert len(device.command_meta) == len(COMMANDS)
    assert not any(meta.is_opening for meta in device.command_meta)
    assert device.read_latency == -1
    assert device.internal_prefetch_size == -1


def test_notify_records_value():
    device = make_device()
    device.notify("refresh_mode", 1)
    assert device.notifications == {"refresh_mode": 1}