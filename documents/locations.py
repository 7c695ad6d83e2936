"""
documents.locations — Department / municipality reference table.

The table is read once per process from ``documents/data/locations.csv``
and shared read-only by every request.  Keys are the five-digit DIVIPOLA
code: two department digits followed by three municipality digits.
"""

from __future__ import annotations

import csv
import io
import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Union

from .records import LocationReference

logger = logging.getLogger(__name__)

DATA_PATH = Path(__file__).parent / "data" / "locations.csv"


class LocationTable:
    """Immutable lookup from department + municipality code to names."""

    def __init__(self, entries: Mapping[str, LocationReference]):
        self._entries = MappingProxyType(dict(entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def resolve(self, department_code: str, municipality_code: str) -> Optional[LocationReference]:
        dept = (department_code or "").strip()
        muni = (municipality_code or "").strip()
        if not (dept.isdigit() and muni.isdigit()):
            return None
        return self._entries.get(dept.zfill(2) + muni.zfill(3))

    @classmethod
    def from_csv(cls, source: Union[str, Path, io.TextIOBase]) -> "LocationTable":
        if isinstance(source, (str, Path)):
            with open(source, encoding="utf-8", newline="") as f:
                return cls(_read_rows(f))
        return cls(_read_rows(source))


def _read_rows(handle) -> dict[str, LocationReference]:
    entries: dict[str, LocationReference] = {}
    for row in csv.DictReader(handle):
        dept = row["department_code"].strip().zfill(2)
        muni = row["municipality_code"].strip().zfill(3)
        entries[dept + muni] = LocationReference(
            department_code=dept,
            department=row["department"].strip(),
            municipality_code=muni,
            municipality=row["municipality"].strip(),
        )
    return entries


@lru_cache(maxsize=1)
def load_locations() -> LocationTable:
    """Return the process-wide location table, loading it on first use."""
    table = LocationTable.from_csv(DATA_PATH)
    logger.debug("Loaded %d location codes from %s", len(table), DATA_PATH)
    return table
