"""Collaborator interfaces: content store and ledger."""

from sitesync_core.interfaces.content_store import ContentLocator, ContentStore, blob_id_of
from sitesync_core.interfaces.ledger import (
    Created,
    Failed,
    Ledger,
    LedgerResult,
    Mutated,
    ResourcePage,
)

__all__ = [
    "ContentLocator",
    "ContentStore",
    "Created",
    "Failed",
    "Ledger",
    "LedgerResult",
    "Mutated",
    "ResourcePage",
    "blob_id_of",
]
