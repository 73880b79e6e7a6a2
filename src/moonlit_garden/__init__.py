"""
Moonlit Garden package root.

The modules in this package implement the garden simulation rules as plain
functions over immutable-style dataclass snapshots. Time and randomness are
always injected so that every outcome can be replayed; persistence, rendering
and inventory live outside of this package.
"""

__version__ = "0.3.0"

__all__ = [
    "__version__",
]
