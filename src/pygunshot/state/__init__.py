"""State/store layer.

This package is the single source of truth for how incoming sensor rosters
and event batches, from the stream or from HTTP pulls, are merged into one
deterministic known-world snapshot, and how that snapshot is windowed for
display.
"""
