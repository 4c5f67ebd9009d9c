import logging

import pytest

from pimsim.spec import (
    DRAMCommandMeta,
    Organization,
    SpecDef,
    SpecLUT,
    TimingConsEntry,
    TimingConsInitializer,
    build_lut,
    populate_timingcons,
)

LEVELS = SpecDef(["channel", "rank", "bank", "row", "column"])
COMMANDS = SpecDef(["ACT", "PRE", "RD", "WR"])


def test_specdef_round_trip():
    for name in LEVELS:
        assert LEVELS.name(LEVELS.index(name)) == name


def test_specdef_len_and_iter():
    assert len(COMMANDS) == 4
    assert list(COMMANDS) == ["ACT", "PRE", "RD", "WR"]


def test_specdef_contains():
    assert LEVELS.contains("bank")
    assert not LEVELS.contains("bankgroup")
    assert "row" in LEVELS


def test_specdef_unknown_name_raises():
    with pytest.raises(KeyError):
        LEVELS.index("bankgroup")


@pytest.mark.parametrize("index", [5, 100, -1])
def test_specdef_bad_index_raises(index):
    with pytest.raises(IndexError):
        LEVELS.name(index)


def test_speclut_name_and_id_agree():
    lut = SpecLUT(COMMANDS, [10, 20, 30, 40])
    for name in COMMANDS:
        assert lut[name] == lut[COMMANDS.index(name)]
    assert lut["RD"] == 30


def test_speclut_set_by_name_reads_by_id():
    lut = SpecLUT(COMMANDS)
    lut["WR"] = 7
    assert lut[COMMANDS.index("WR")] == 7
    assert len(lut) == len(COMMANDS)


def test_speclut_out_of_range():
    lut = SpecLUT(COMMANDS, [1, 2, 3, 4])
    with pytest.raises(IndexError):
        _ = lut[4]
    with pytest.raises(KeyError):
        _ = lut["REF"]
    with pytest.raises(IndexError):
        lut[-1] = 3
    assert list(lut) == [1, 2, 3, 4]


def test_build_lut_with_value_def():
    lut = build_lut(COMMANDS, {"ACT": "row", "RD": "column"}, LEVELS)
    assert lut["ACT"] == LEVELS.index("row")
    assert lut["RD"] == LEVELS.index("column")
    assert lut["PRE"] is None


def test_build_lut_plain_values():
    lut = build_lut(LEVELS, {"bank": "Closed"})
    assert lut["bank"] == "Closed"
    assert list(lut).count(None) == len(LEVELS) - 1


def test_build_lut_unknown_names():
    with pytest.raises(KeyError):
        build_lut(COMMANDS, {"REF": "rank"}, LEVELS)
    with pytest.raises(KeyError):
        build_lut(COMMANDS, {"ACT": "bankgroup"}, LEVELS)


def test_populate_timingcons_shape_and_entries():
    cons = populate_timingcons(
        LEVELS,
        COMMANDS,
        [
            TimingConsInitializer("bank", ["ACT"], ["RD", "WR"], 5),
            TimingConsInitializer("rank", ["RD", "WR"], ["PRE", "ACT"], 9, window=2, is_sibling=True),
        ],
    )
    assert len(cons) == len(LEVELS)
    assert all(len(row) == len(COMMANDS) for row in cons)

    bank_act = cons[LEVELS.index("bank")][COMMANDS.index("ACT")]
    assert bank_act == [
        TimingConsEntry(COMMANDS.index("RD"), 5),
        TimingConsEntry(COMMANDS.index("WR"), 5),
    ]

    rank = cons[LEVELS.index("rank")]
    rank_entries = rank[COMMANDS.index("RD")] + rank[COMMANDS.index("WR")]
    assert len(rank_entries) == 4
    assert all(e.sibling and e.window == 2 and e.val == 9 for e in rank_entries)
    assert cons[LEVELS.index("channel")][COMMANDS.index("ACT")] == []


def test_populate_timingcons_unknown_level():
    with pytest.raises(KeyError):
        populate_timingcons(LEVELS, COMMANDS, [TimingConsInitializer("bg", ["ACT"], ["RD"], 1)])


def test_timing_entry_defaults():
    entry = TimingConsEntry(2, 3)
    assert entry.window == 1
    assert entry.sibling is False


def test_timing_entry_negative_window_clamped(caplog):
    with caplog.at_level(logging.WARNING):
        entry = TimingConsEntry(0, 4, window=-3)
    assert entry.window == 0
    assert "smaller than 0" in caplog.text


def test_organization_and_meta_defaults():
    org = Organization()
    assert (org.density, org.dq, org.count) == (-1, -1, [])
    meta = DRAMCommandMeta(is_opening=True)
    assert meta.is_opening and not meta.is_closing