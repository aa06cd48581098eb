#!/usr/bin/env python3
"""
Result ranking for Megethos

Orders scan records by size, largest first, after the traversal is complete.
"""

from typing import Optional, Union

from file_aggregator import FileRecord, FolderRecord

Record = Union[FileRecord, FolderRecord]


def size_of(record: Record) -> int:
    """Size metric used for ordering: bytes of a file, recursive total of a folder"""
    if isinstance(record, FolderRecord):
        return record.total_size_bytes
    return record.size_bytes


def rank(records: list[Record], top_n: Optional[int] = None, min_size_bytes: int = 0) -> list[Record]:
    """Sort records by size descending, drop those below *min_size_bytes*, keep the first *top_n*.

    The sort is stable, so records of equal size keep their traversal order.
    """
    ranked = sorted(records, key=size_of, reverse=True)
    if min_size_bytes > 0:
        ranked = [r for r in ranked if size_of(r) >= min_size_bytes]
    if top_n is not None:
        ranked = ranked[:top_n]
    return ranked
