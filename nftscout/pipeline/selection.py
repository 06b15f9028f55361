from __future__ import annotations

import re
from typing import Sequence

from ..errors import InvalidUnitCountError, NoCandidatesError
from .types import Candidate, Collection, SelectedItem

_UNIT_COUNT_RE = re.compile(r"[+-]?[0-9]+")


def parse_unit_count(value: object) -> int:
    """Parse a provider-reported unit count as a strict base-10 integer.

    Only an optional sign followed by ASCII digits is accepted; whitespace,
    underscores and decimals are rejected.
    """

    if isinstance(value, bool):
        raise InvalidUnitCountError(value)
    if isinstance(value, int):
        return value
    text = value if isinstance(value, str) else None
    if text is None or not _UNIT_COUNT_RE.fullmatch(text):
        raise InvalidUnitCountError(value)
    return int(text)


def select_minimal_candidate(
    collection: Collection, candidates: Sequence[Candidate]
) -> SelectedItem:
    """Return the candidate with the strictly smallest unit count for ``collection``.

    The scan is order preserving, so the first candidate seen wins ties. Any
    unparseable unit count fails the whole collection.
    """

    if not candidates:
        raise NoCandidatesError()

    best: Candidate | None = None
    best_count = 0
    for candidate in candidates:
        count = parse_unit_count(candidate.unit_count)
        if best is None or count < best_count:
            best = candidate
            best_count = count

    assert best is not None
    return SelectedItem(
        collection_name=collection.name,
        contract_address=collection.contract_address,
        unit_count=best_count,
        destination_address=best.destination_address,
        payload=best.payload,
        native_value=best.native_value,
    )
