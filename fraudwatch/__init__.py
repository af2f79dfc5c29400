"""
fraudwatch - data-access core for a fraud-monitoring admin dashboard.

Translates operator requests (search, filters, sort, page) into queries a
single-field-indexed document store can serve, reconciles the results in
memory and serves them as immutable paginated responses:

- Timestamp normalization across producer encodings
- Query planning (pushed constraints vs. residual filters)
- Fetch-and-reconcile with index-required fallback
- Per-collection cache with debounce and last-request-wins
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from fraudwatch.config import Settings, get_settings
from fraudwatch.coordinator import Coordinator
from fraudwatch.data_access import AdminDataAccess
from fraudwatch.domain.models import PageRequest, PageResponse, Pagination, SortSpec
from fraudwatch.errors import (
    FraudwatchError,
    IndexRequiredError,
    RecordDecodeError,
    TransientStoreError,
    ValidationError,
)
from fraudwatch.store import build_store
from fraudwatch.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Data access
    "AdminDataAccess",
    "Coordinator",
    "build_store",
    # Models
    "PageRequest",
    "PageResponse",
    "Pagination",
    "SortSpec",
    # Errors
    "FraudwatchError",
    "IndexRequiredError",
    "RecordDecodeError",
    "TransientStoreError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
