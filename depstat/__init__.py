"""depstat: metrics, cycles, paths and diffs for module dependency graphs."""

__version__ = "0.4.0"
