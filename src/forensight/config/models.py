"""Configuration models describing Forensight settings."""

from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

ContentCategoryName = Literal["image", "document", "audio", "video"]


class ForensightBaseModel(BaseModel):
    """Shared configuration for Forensight Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class HashingSettings(ForensightBaseModel):
    """Settings for the streaming digest pass.

    Attributes:
        chunk_size_bytes: Size of each chunk read from the source.
        backend: ``auto`` prefers hashlib and falls back to the software
            implementation; ``native`` and ``software`` force one of them.
    """

    chunk_size_bytes: int = Field(default=2 * 1024 * 1024, gt=0)
    backend: Literal["auto", "native", "software"] = "auto"


class InspectionSettings(ForensightBaseModel):
    """Settings for signature inspection and content sniffing.

    Attributes:
        prefix_bytes: Number of leading bytes read for sniffing and signatures.
    """

    prefix_bytes: int = Field(default=4096, ge=16)


class ExtractionSettings(ForensightBaseModel):
    """Settings governing metadata extraction.

    Attributes:
        enabled: Whether metadata extraction runs at all.
        disabled_categories: Categories that always yield empty attribute sets.
    """

    enabled: bool = True
    disabled_categories: List[ContentCategoryName] = Field(default_factory=list)


class WorkerSettings(ForensightBaseModel):
    """Background execution settings.

    Attributes:
        max_concurrent_analyses: Number of analyses allowed to run at once.
    """

    max_concurrent_analyses: int = Field(default=2, ge=1)


class StorageSettings(ForensightBaseModel):
    """Location of stored analysis records.

    Attributes:
        records_dir: Directory holding one JSON file per record.
    """

    records_dir: str = "~/.forensight/records"


class LoggingSettings(ForensightBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        file: Optional path of a rotating log file.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: str = "WARNING"
    file: Optional[str] = None
    max_size_mb: int = 100
    backup_count: int = 5


class CLIOptions(ForensightBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        json_default: Whether commands emit JSON by default.
    """

    quiet_default: bool = False
    json_default: bool = False


class ForensightConfig(ForensightBaseModel):
    """Top-level configuration struct for Forensight."""

    hashing: HashingSettings = Field(default_factory=HashingSettings)
    inspection: InspectionSettings = Field(default_factory=InspectionSettings)
    extraction: ExtractionSettings = Field(default_factory=ExtractionSettings)
    workers: WorkerSettings = Field(default_factory=WorkerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ForensightBaseModel",
    "HashingSettings",
    "InspectionSettings",
    "ExtractionSettings",
    "WorkerSettings",
    "StorageSettings",
    "LoggingSettings",
    "CLIOptions",
    "ForensightConfig",
]
