"""Storage layer for Oracle - record store interface and implementations.

This package provides:
- RecordStore protocol consumed by the lifecycle coordinator
- InMemoryRecordStore for tests and embedding
- YamlRecordStore persisting to data/records.yaml with atomic writes
"""

from .base import RecordStore
from .memory import InMemoryRecordStore, Records
from .records import YamlRecordStore, load_records, save_records

__all__ = [
    "RecordStore",
    "InMemoryRecordStore",
    "Records",
    "YamlRecordStore",
    "load_records",
    "save_records",
]
