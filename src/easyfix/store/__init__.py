"""
Storage module for easyfix.

Captured calls are written as one JSON file per (fixture name, ordinal)
under the configured fixture directory. Replay reads them back by the same
key; call order is the only matching criterion.
"""

from easyfix.store.fixtures import FixtureStore, args_hash, compute_hash, safe_name

__all__ = [
    "FixtureStore",
    "args_hash",
    "compute_hash",
    "safe_name",
]
