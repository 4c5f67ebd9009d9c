"""Building blocks for cycle-level DRAM and processing-in-memory simulation."""

__version__ = "2.0.0"