from __future__ import annotations

import datetime
import enum
from dataclasses import dataclass, field
from typing import Optional


@dataclass(frozen=True, slots=True)
class Collection:
    """Discovery stage output describing a contract eligible for a mint attempt."""

    contract_address: str
    name: str
    deployer_address: Optional[str] = None
    reported_flags: frozenset[str] = field(default_factory=frozenset)
    total_mints: Optional[str] = None
    source: str = "unknown"


@dataclass(frozen=True, slots=True)
class Candidate:
    """One possible mint transaction for a :class:`Collection`.

    ``unit_count`` is kept exactly as the provider reported it; the selection
    stage owns parsing it.
    """

    destination_address: str
    payload: bytes
    unit_count: str
    native_value: str = "0"


@dataclass(frozen=True, slots=True)
class SelectedItem:
    """The minimal-unit-count :class:`Candidate` bound to its collection."""

    collection_name: str
    contract_address: str
    unit_count: int
    destination_address: str
    payload: bytes
    native_value: str = "0"


@dataclass(frozen=True, slots=True)
class TransactionRecord:
    name: str
    contract_address: str
    unit_count: int
    transaction_hash: str


@dataclass(frozen=True, slots=True)
class ErrorRecord:
    kind: str
    message: str
    context: str
    timestamp: datetime.datetime


@dataclass(frozen=True, slots=True)
class TransactionRequest:
    """Unsigned transaction built by the submission stage."""

    to: str
    value: int
    gas_price: int
    gas_limit: int
    data: bytes


class SubmissionState(str, enum.Enum):
    RECEIVED = "received"
    DEDUP_CHECKED = "dedup-checked"
    SKIPPED = "skipped"
    ESTIMATING = "estimating"
    BUILDING = "building"
    SIGNING = "signing"
    BROADCASTING = "broadcasting"
    PERSISTING = "persisting"
    DONE = "done"
    FAILED = "failed"


@dataclass(slots=True)
class SubmissionReceipt:
    """Outcome of running one :class:`SelectedItem` through submission."""

    contract_address: str
    state: SubmissionState
    started_at: float
    finished_at: float = 0.0
    transaction_hash: Optional[str] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state is SubmissionState.DONE
