"""Named definitions, lookup tables and timing constraints describing a DRAM device."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar, Union

_log = logging.getLogger(__name__)

V = TypeVar("V")
Key = Union[str, int]


@dataclass
class Organization:
    """Organization hierarchy of a device."""

    density: int = -1
    """Density of the chip in Mb."""
    dq: int = -1
    """DQ width."""
    count: list[int] = field(default_factory=list)
    """Size of each level in the hierarchy."""


@dataclass
class DRAMCommandMeta:
    """Meta information about a command."""

    is_opening: bool = False
    is_closing: bool = False
    is_accessing: bool = False
    is_refreshing: bool = False


@dataclass
class TimingConsEntry:
    """A single timing constraint on a following command."""

    cmd: int
    val: int
    window: int = 1
    sibling: bool = False

    def __post_init__(self) -> None:
        if self.window < 0:
            _log.warning("[DRAM Spec] Timing constraint value smaller than 0!")
            self.window = 0


@dataclass
class TimingConsInitializer:
    """Describes constraints between every preceding and following command at a level."""

    level: str
    preceding: list[str]
    following: list[str]
    latency: int = -1
    window: int = 1
    is_sibling: bool = False


class SpecDef:
    """An ordered set of names, each identified by its position."""

    def __init__(self, names: Iterable[str] = ()) -> None:
        self._names = tuple(names)
        self._ids = {name: i for i, name in enumerate(self._names)}

    def contains(self, name: str) -> bool:
        return name in self._ids

    __contains__ = contains

    def name(self, index: int) -> str:
        if not 0 <= index < len(self._names):
            raise IndexError(f"no definition with id {index}")
        return self._names[index]

    def index(self, name: str) -> int:
        try:
            return self._ids[name]
        except KeyError:
            raise KeyError(f"no definition named {name!r}") from None

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __repr__(self) -> str:
        return f"SpecDef({list(self._names)!r})"


class SpecLUT(Generic[V]):
    """A table of values keyed by the names (or ids) of a SpecDef."""

    def __init__(self, key_def: SpecDef, values: Iterable[V] | None = None) -> None:
        self.key_def = key_def
        self._values: list[Any] = (
            list(values) if values is not None else [None] * len(key_def)
        )

    def _id(self, key: Key) -> int:
        if isinstance(key, str):
            return self.key_def.index(key)
        if not 0 <= key < len(self.key_def):
            raise IndexError("SpecLUT out of range")
        return key

    def __getitem__(self, key: Key) -> V:
        return self._values[self._id(key)]

    def __setitem__(self, key: Key, value: V) -> None:
        self._values[self._id(key)] = value

    def __len__(self) -> int:
        return len(self._values)

    def __iter__(self) -> Iterator[V]:
        return iter(self._values)

    def __repr__(self) -> str:
        return f"SpecLUT({self._values!r})"


def build_lut(
    key_def: SpecDef, mapping: Mapping[str, Any], value_def: SpecDef | None = None
) -> SpecLUT:
    """Build a table from a name mapping; with value_def, values are names turned into ids."""
    values: list[Any] = [None] * len(key_def)
    for key, value in mapping.items():
        values[key_def.index(key)] = (
            value_def.index(value) if value_def is not None else value
        )
    return SpecLUT(key_def, values)


def populate_timingcons(
    levels: SpecDef, commands: SpecDef, initializers: Iterable[TimingConsInitializer]
) -> list[list[list[TimingConsEntry]]]:
    """Expand initializers into a [level][preceding command] list of constraints."""
    cons: list[list[list[TimingConsEntry]]] = [
        [[] for _ in commands] for _ in levels
    ]
    for ts in initializers:
        level = levels.index(ts.level)
        for p_name in ts.preceding:
            p_cmd = commands.index(p_name)
            for f_name in ts.following:
                cons[level][p_cmd].append(
                    TimingConsEntry(
                        commands.index(f_name), ts.latency, ts.window, ts.is_sibling
                    )
                )
    return cons