"""Ledger adapters."""

from sitesync_core.config.models import LedgerConfig
from sitesync_core.interfaces.ledger import Ledger
from sitesync_core.ledgers.command import CommandLedger
from sitesync_core.ledgers.memory import MemoryLedger


def create_ledger(config: LedgerConfig) -> Ledger:
    """Create a ledger adapter from app-level config."""
    if config.provider == "memory":
        return MemoryLedger()
    if config.provider == "command":
        return CommandLedger(command=config.command, timeout=config.timeout)
    raise ValueError(
        f"Unsupported ledger provider: {config.provider!r}. "
        "Supported: memory, command"
    )


__all__ = [
    "CommandLedger",
    "MemoryLedger",
    "create_ledger",
]
