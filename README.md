# pimsim

Building blocks for a cycle-level simulator of DRAM memory systems with
processing-in-memory (PIM) commands: a DRAM device model with per-node state
and timing tracking, the command actions and prerequisite checks for HBM-style
organizations, address translation, memory-trace frontends, and a simple
out-of-order core with a last-level cache.

## Installation

```
pip install .
```

Python 3.10 or later is required. The only runtime dependency is PyYAML,
used to print statistics.

## Modules

- `pimsim.spec` – `SpecDef` (an ordered set of names addressed by id via
  `index()` / `name()`), `SpecLUT` (a table keyed by the names or ids of a
  `SpecDef`), `build_lut`, the `Organization`, `DRAMCommandMeta`,
  `TimingConsEntry` and `TimingConsInitializer` records, and
  `populate_timingcons`, which expands initializers into a
  `[level][preceding command]` list of constraints.
- `pimsim.node` – `DRAMNode`, one node of the device hierarchy. It builds its
  children down to the level above `row`, keeps the ready cycle and issue
  history of every command, and offers `update_states`, `update_timing`,
  `get_preq_command`, `check_ready` and `check_rowbuffer_hit`.
- `pimsim.dram` – `DRAMDevice`, a clocked device holding the specification
  and the channel nodes, with `issue_command`, `get_preq_command`,
  `check_ready`, `check_rowbuffer_hit`, `notify` (records the key and value),
  `tick` and `get_level_size` (returns -1 for an unknown level).
- `pimsim.actions` – state changes applied when commands are issued
  (`bank_act`, `bank_pre`, `bank_actab`, `bank_actsb`, `bank_actpb`,
  `rank_prea`, `channel_prea`, the same-bank and per-bank PIM timing
  broadcasts, …). Organizations they do not support raise
  `UnsupportedOrganizationError`.
- `pimsim.prerequisites` – prerequisite checks (`bank_require_row_open`,
  `bank_require_all_banks_row_open`, `rank_require_all_banks_closed`,
  `channel_require_all_banks_closed`, …) and the row-buffer checks
  `rowhit_bank_rdwr` and `rowopen_bank_rdwr`. A bank in neither the
  `Opened` nor the `Closed` state raises `InvalidBankStateError`.
- `pimsim.interfaces` – `Request`, `RequestType`, `ConfigurationError` and the
  abstract `FrontEnd`, `MemorySystem` and `Translation` classes.
  `finalize()` prints the result of `stats()` as a YAML map.
- `pimsim.translation` – `NoTranslation`, `RandomTranslation` (random page
  allocation per core, seeded; `reserve` accepts only the kind `"Hydra"` and
  raises `ConfigurationError` otherwise) and `Mt19937_64`, the 64-bit
  Mersenne Twister it draws pages from.
- `pimsim.traces` – trace readers and the frontends `LoadStoreTrace`,
  `PIMLoadStoreTrace`, `ReadWriteTrace` and `GEM5Frontend`.
- `pimsim.core` – `SimpleO3Trace`, `Inst`, `InstWindow` (a simplified
  reorder buffer) and `SimpleO3Core`.
- `pimsim.llc` – `SimpleO3LLC`, a set-associative LRU cache with MSHRs and a
  fixed latency; `serialize` / `deserialize` write and read its contents as
  CSV, `dump_llc` prints them.

## Trace formats

Load/store trace (`LoadStoreTrace`, `read_loadstore_trace`), one request per
line, address in decimal or `0x`/`0X` hex:

```
LD 0x1000
ST 4096
```

PIM trace (`PIMLoadStoreTrace`, `read_pim_loadstore_trace`) also accepts
`PIM_MAC_AB`, `PIM_MAC_SB`, `PIM_MAC_PB`, `PIM_WR_GB`, `PIM_MV_SB`,
`PIM_MV_GB`, `PIM_SFM`, `PIM_SET_MODEL`, `PIM_SET_HEAD` and `PIM_BARRIER`.

Both frontends send every line once, as many per tick as the memory system
accepts, and are finished when all lines have been sent.

Address-vector trace (`ReadWriteTrace`, `read_readwrite_trace`):

```
R 0,1,0,2,3,100,4
```

`ReadWriteTrace` sends one request per tick, cycling through the trace; an
`R` line is sent as a write and a `W` line as a read.

Core trace (`SimpleO3Trace`):
`<non-memory instructions> <load address> [writeback address]`.

A missing file or a malformed line raises
`pimsim.interfaces.ConfigurationError`.

## Example

A frontend needs a memory system to send to. Any subclass of
`pimsim.interfaces.MemorySystem` will do:

```python
from pimsim.interfaces import MemorySystem
from pimsim.traces import LoadStoreTrace


class RecordingMemory(MemorySystem):
    def __init__(self):
        super().__init__()
        self.received = []

    def send(self, req):
        self.received.append(req)
        return True

    def tick(self):
        pass

    def is_pending(self):
        return False


frontend = LoadStoreTrace("trace.txt", clock_ratio=1)
memory = RecordingMemory()
frontend.connect_memory_system(memory)
while not frontend.is_finished():
    frontend.tick()
print([(r.type_id.name, r.addr) for r in memory.received])
```

## What this package does not do

There is no command-line program and no ready-made simulation run. The
package has no memory system that maps addresses to channels and drives
memory controllers, no processor frontend that wires several `SimpleO3Core`
objects to a shared `SimpleO3LLC`, no loop that ticks a frontend and a memory
system at their clock ratios, and no loading of YAML configurations. To run a
simulation, assemble these pieces yourself as in the example above.