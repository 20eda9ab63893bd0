"""Package initialization for random-weight-table.

A thread-safe table of weighted, keyed payloads supporting weighted random
draws and per-key probability queries.
"""

from random_weight_table.table import Item, WeightTable, new

__version__ = "0.1.0"
__all__ = ["Item", "WeightTable", "new"]
