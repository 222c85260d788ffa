"""Content store adapters."""

from sitesync_core.config.models import StoreConfig
from sitesync_core.interfaces.content_store import ContentStore
from sitesync_core.stores.http import HttpContentStore
from sitesync_core.stores.memory import MemoryContentStore


def create_content_store(config: StoreConfig) -> ContentStore:
    """Create a content store adapter from app-level config."""
    if config.provider == "memory":
        return MemoryContentStore(epochs=config.epochs)
    if config.provider == "http":
        return HttpContentStore(
            publisher_url=config.publisher_url,
            aggregator_url=config.aggregator_url,
            epochs=config.epochs,
            timeout=config.timeout,
        )
    raise ValueError(
        f"Unsupported content store provider: {config.provider!r}. "
        "Supported: memory, http"
    )


__all__ = [
    "HttpContentStore",
    "MemoryContentStore",
    "create_content_store",
]
