from pydantic import BaseModel, Field, model_validator
from typing import Literal


class ScanConfig(BaseModel):
    batch_size: int = Field(default=10, gt=0)
    ignore_patterns: list[str] = Field(default_factory=lambda: [
        ".git", "node_modules", ".DS_Store", ".sitesync", "__pycache__"
    ])
    # First existing file wins; the rest are fallbacks.
    ignore_files: list[str] = Field(default_factory=lambda: [".sitesyncignore", ".gitignore"])
    # Where ignore files live. Defaults to the parent of the deployed directory.
    project_root: str | None = None


class StoreConfig(BaseModel):
    provider: Literal["memory", "http"] = "memory"
    publisher_url: str = "https://publisher.walrus-testnet.walrus.space"
    aggregator_url: str = "https://aggregator.walrus-testnet.walrus.space"
    epochs: int = Field(default=1, ge=1, le=200)
    timeout: float = Field(default=60.0, gt=0)
    upload_batch_size: int = Field(default=10, gt=0)


class LedgerConfig(BaseModel):
    provider: Literal["memory", "command"] = "memory"
    command: list[str] = Field(default_factory=list)
    network: Literal["testnet", "mainnet"] = "testnet"
    page_size: int = Field(default=50, gt=0)
    max_mutations_per_tx: int = Field(default=50, gt=0, le=1024)
    timeout: int = Field(default=120, gt=0)

    @model_validator(mode="after")
    def check_command(self) -> "LedgerConfig":
        if self.provider == "command" and not self.command:
            raise ValueError("ledger.command is required when provider is 'command'")
        return self


class StateConfig(BaseModel):
    directory: str = ".sitesync"


class WatchConfig(BaseModel):
    debounce_seconds: float = Field(default=2.0, gt=0)


class SiteSyncConfig(BaseModel):
    scan: ScanConfig = Field(default_factory=ScanConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)
    state: StateConfig = Field(default_factory=StateConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
