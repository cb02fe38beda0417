"""JSON file storage for completed analysis records."""

from __future__ import annotations

import json
import uuid
from pathlib import Path
from typing import List

from pydantic import ValidationError

from forensight.analysis.models import AnalysisRecord

from .errors import MissingRecordError, RecordStoreError

DEFAULT_RECORDS_DIR = Path("~/.forensight/records")


class RecordStore:
    """Persist analysis records as one JSON document per identifier.

    The store only ever receives finished records; it never modifies them.
    """

    def __init__(self, directory: Path | str = DEFAULT_RECORDS_DIR) -> None:
        """Initialize the store.

        Args:
            directory: Directory holding the record files.
        """
        self._directory = Path(directory).expanduser()

    @property
    def directory(self) -> Path:
        """Return the directory holding record files."""
        return self._directory

    def save(self, record: AnalysisRecord) -> Path:
        """Write ``record`` to disk.

        Args:
            record: Completed analysis record.

        Returns:
            Path: Location of the written JSON document.

        Raises:
            RecordStoreError: If the record cannot be written.
        """
        path = self._record_path(record.id)
        payload = record.model_dump(mode="json", exclude_none=True)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            path.write_text(json.dumps(payload, indent=2, sort_keys=False), encoding="utf-8")
        except OSError as exc:
            raise RecordStoreError(f"Unable to write record {record.id}: {exc}") from exc
        return path

    def load(self, record_id: str) -> AnalysisRecord:
        """Return the stored record for ``record_id``.

        Raises:
            MissingRecordError: If no record is stored under the identifier.
            RecordStoreError: If the stored document cannot be parsed.
        """
        path = self._record_path(record_id)
        if not path.exists():
            raise MissingRecordError(f"No analysis record {record_id} in {self._directory}")

        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            return AnalysisRecord.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise RecordStoreError(f"Invalid record data for {record_id}: {exc}") from exc

    def delete(self, record_id: str) -> None:
        """Remove the record stored under ``record_id``.

        Raises:
            MissingRecordError: If no record is stored under the identifier.
        """
        path = self._record_path(record_id)
        try:
            path.unlink()
        except FileNotFoundError as exc:
            raise MissingRecordError(f"No analysis record {record_id} in {self._directory}") from exc

    def list_ids(self) -> List[str]:
        """Return identifiers of all stored records, sorted."""
        if not self._directory.exists():
            return []
        return sorted(path.stem for path in self._directory.glob("*.json"))

    def _record_path(self, record_id: str) -> Path:
        try:
            canonical = str(uuid.UUID(record_id))
        except (TypeError, ValueError) as exc:
            raise MissingRecordError(f"'{record_id}' is not a valid record identifier.") from exc
        return self._directory / f"{canonical}.json"


__all__ = [
    "DEFAULT_RECORDS_DIR",
    "RecordStore",
    "RecordStoreError",
    "MissingRecordError",
]
