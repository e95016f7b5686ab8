"""
Snapshot persistence for the stock order book.

This module saves and restores a whole book (both sides plus the trade
ledger) as one crash-atomic JSON snapshot.
"""

from .snapshot import SnapshotStore, LoadStatus, encode_book, decode_book, SNAPSHOT_VERSION

__all__ = [
    "SnapshotStore",
    "LoadStatus",
    "encode_book",
    "decode_book",
    "SNAPSHOT_VERSION",
]
