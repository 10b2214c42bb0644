"""Tests for the JSON file record store."""

import json
from pathlib import Path

import pytest

from geovec.exceptions import ErrorCode, VectorStoreError
from geovec.geodata.models import DataType
from geovec.vectorstore.local import LocalRecordStore
from geovec.vectorstore.models import DataRecord


def _record(record_id: str = "poi_B000A7BD6C", **overrides: object) -> DataRecord:
    fields: dict = {
        "id": record_id,
        "data_type": DataType.POI,
        "source_tool": "maps_text_search",
        "vector": [0.1, 0.2],
        "text": "data type: poi. tool: maps_text_search",
        "geo_info": "Beijing",
        "content_summary": "POI: Tiananmen",
        "attributes": {"name": "Tiananmen"},
        "original_payload": {"city": "Beijing"},
        "timestamp": 1748741400,
    }
    fields.update(overrides)
    return DataRecord(**fields)


class TestLocalRecordStore:
    def test_save_layout(self, tmp_path: Path) -> None:
        """Records land at <root>/<type>/<id>.json."""
        store = LocalRecordStore(tmp_path)

        path = store.save(_record())

        assert path == tmp_path / "poi" / "poi_B000A7BD6C.json"
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["id"] == "poi_B000A7BD6C"
        assert data["data_type"] == "poi"
        assert data["original_payload"] == {"city": "Beijing"}
        assert "score" not in data

    def test_round_trip(self, tmp_path: Path) -> None:
        store = LocalRecordStore(tmp_path)
        record = _record()
        store.save(record)

        assert store.load(DataType.POI, record.id) == record

    def test_overwrite(self, tmp_path: Path) -> None:
        """Saving the same id again replaces the file."""
        store = LocalRecordStore(tmp_path)
        store.save(_record(content_summary="first"))
        store.save(_record(content_summary="second"))

        assert store.list_ids(DataType.POI) == ["poi_B000A7BD6C"]
        assert store.load(DataType.POI, "poi_B000A7BD6C").content_summary == "second"

    def test_unsafe_id_characters(self, tmp_path: Path) -> None:
        store = LocalRecordStore(tmp_path)
        path = store.save(_record("poi_a/b"))
        assert path.parent == tmp_path / "poi"
        assert path.name == "poi_a_b.json"

    def test_load_missing(self, tmp_path: Path) -> None:
        store = LocalRecordStore(tmp_path)
        with pytest.raises(VectorStoreError) as exc_info:
            store.load(DataType.WEATHER, "weather_Beijing_20250601")
        assert exc_info.value.code == ErrorCode.RECORD_NOT_FOUND

    def test_load_corrupt(self, tmp_path: Path) -> None:
        store = LocalRecordStore(tmp_path)
        path = store.path_for(DataType.POI, "broken")
        path.parent.mkdir(parents=True)
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(VectorStoreError) as exc_info:
            store.load(DataType.POI, "broken")
        assert exc_info.value.code == ErrorCode.PERSISTENCE_ERROR

    def test_save_failure(self, tmp_path: Path) -> None:
        """An unwritable root surfaces as a persistence error."""
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        store = LocalRecordStore(blocker)

        with pytest.raises(VectorStoreError) as exc_info:
            store.save(_record())
        assert exc_info.value.code == ErrorCode.PERSISTENCE_ERROR

    def test_list_ids_empty(self, tmp_path: Path) -> None:
        assert LocalRecordStore(tmp_path).list_ids(DataType.ROUTE) == []
