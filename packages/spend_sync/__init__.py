"""Public interface for the ``spend_sync`` package.

Symbol re-exports only; there is no runtime logic here.
"""

from .action_queue import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_QUEUE_KEY,
    ActionQueue,
    ActionQueueError,
    DrainResult,
    UnknownActionTypeError,
)
from .actions import (
    ACTION_TYPES,
    ActionHandlers,
    NoteUpdatePayload,
    QueuedAction,
    ReminderDismissPayload,
    ShortlistAddPayload,
    StatusUpdatePayload,
    UnrecognizedAction,
)
from .categories import (
    CATEGORY_SYNONYMS,
    STANDARD_CATEGORIES,
    StandardCategory,
    canonical_category,
    is_standard_category,
    normalize_category,
    spend_split_to_shares,
)
from .identity import (
    IdentityFieldError,
    amount_to_minor,
    dedup_hash,
    normalize_merchant,
    transaction_id,
    validate_identity_fields,
)
from .ingest import annotate_batch, drop_in_batch_duplicates
from .models import AnnotatedTransaction, RecordResult, SpendingSummary, TransactionRecord
from .queue_store import JsonFileQueueStore, MemoryQueueStore, QueueStore, SqlQueueStore
from .spending import (
    calculate_total_spending,
    group_by_category,
    include_in_spending,
    is_fee_or_interest,
    summarize_spending,
)

__all__ = [
    # Canonicalizer
    "STANDARD_CATEGORIES",
    "StandardCategory",
    "CATEGORY_SYNONYMS",
    "normalize_category",
    "is_standard_category",
    "canonical_category",
    "spend_split_to_shares",
    # Spend classifier
    "include_in_spending",
    "is_fee_or_interest",
    "calculate_total_spending",
    "group_by_category",
    "summarize_spending",
    # Identity
    "transaction_id",
    "dedup_hash",
    "normalize_merchant",
    "amount_to_minor",
    "validate_identity_fields",
    "IdentityFieldError",
    # Ingest
    "annotate_batch",
    "drop_in_batch_duplicates",
    # Queue
    "ActionQueue",
    "ActionHandlers",
    "ActionQueueError",
    "UnknownActionTypeError",
    "DrainResult",
    "DEFAULT_QUEUE_KEY",
    "DEFAULT_MAX_RETRIES",
    "ACTION_TYPES",
    "QueuedAction",
    "UnrecognizedAction",
    "StatusUpdatePayload",
    "NoteUpdatePayload",
    "ShortlistAddPayload",
    "ReminderDismissPayload",
    "QueueStore",
    "MemoryQueueStore",
    "JsonFileQueueStore",
    "SqlQueueStore",
    # Models / types
    "TransactionRecord",
    "AnnotatedTransaction",
    "RecordResult",
    "SpendingSummary",
]
