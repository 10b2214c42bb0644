"""File-backed record store: one JSON document per record."""

from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from geovec.exceptions import ErrorCode, VectorStoreError
from geovec.geodata.models import DataType
from geovec.logging_config import get_logger
from geovec.vectorstore.models import DataRecord

logger = get_logger(__name__)


class LocalRecordStore:
    """Stores records at ``{storage_path}/{data_type}/{id}.json``.

    Saving an existing id overwrites the file.
    """

    def __init__(self, storage_path: str | Path) -> None:
        self._root = Path(storage_path)

    @property
    def root(self) -> Path:
        return self._root

    def path_for(self, data_type: DataType | str, record_id: str) -> Path:
        """Return the file path of a record."""
        type_name = DataType(data_type).value
        file_name = record_id.replace("/", "_").replace("\\", "_")
        return self._root / type_name / f"{file_name}.json"

    def save(self, record: DataRecord) -> Path:
        """Write a record to disk.

        Raises:
            VectorStoreError: If the file cannot be written.
        """
        path = self.path_for(record.data_type, record.id)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                record.model_dump_json(indent=2, exclude={"score"}),
                encoding="utf-8",
            )
        except OSError as e:
            raise VectorStoreError(
                f"Failed to write record file: {e}",
                code=ErrorCode.PERSISTENCE_ERROR,
                details={"path": str(path), "error": str(e)},
            ) from e

        logger.debug("Saved record", extra={"path": str(path)})
        return path

    def load(self, data_type: DataType | str, record_id: str) -> DataRecord:
        """Read a record back from disk.

        Raises:
            VectorStoreError: If the file is missing or unreadable.
        """
        path = self.path_for(data_type, record_id)
        if not path.exists():
            raise VectorStoreError(
                f"Record file not found: {path}",
                code=ErrorCode.RECORD_NOT_FOUND,
                details={"path": str(path)},
            )

        try:
            return DataRecord.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, PydanticValidationError) as e:
            raise VectorStoreError(
                f"Failed to read record file: {e}",
                code=ErrorCode.PERSISTENCE_ERROR,
                details={"path": str(path)},
            ) from e

    def list_ids(self, data_type: DataType | str) -> list[str]:
        """List stored record file names (without suffix) for a data type."""
        type_dir = self._root / DataType(data_type).value
        if not type_dir.is_dir():
            return []
        return sorted(p.stem for p in type_dir.glob("*.json"))
