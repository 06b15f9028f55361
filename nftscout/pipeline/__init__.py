"""Three-stage discovery → selection → submission pipeline."""

from .cancel import CancelToken
from .coordinator import PipelineCoordinator
from .discovery_service import DiscoveryService
from .selection import parse_unit_count, select_minimal_candidate
from .selection_service import SelectionService
from .submission_service import SubmissionService, build_transaction
from .types import (
    Candidate,
    Collection,
    ErrorRecord,
    SelectedItem,
    SubmissionReceipt,
    SubmissionState,
    TransactionRecord,
    TransactionRequest,
)

__all__ = [
    "CancelToken",
    "PipelineCoordinator",
    "DiscoveryService",
    "SelectionService",
    "SubmissionService",
    "build_transaction",
    "parse_unit_count",
    "select_minimal_candidate",
    "Candidate",
    "Collection",
    "ErrorRecord",
    "SelectedItem",
    "SubmissionReceipt",
    "SubmissionState",
    "TransactionRecord",
    "TransactionRequest",
]
