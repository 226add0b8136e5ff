"""Tests for the game metadata record and store."""

import json
import stat
from datetime import UTC, datetime
from pathlib import Path

import pytest
from pydantic import ValidationError

from buildit.lib.metadata import (
    GameMetadata,
    MetadataCorruptError,
    MetadataNotFoundError,
    load_metadata,
    metadata_path,
    save_metadata,
)


class TestGameMetadata:
    """Tests for GameMetadata validation."""

    def test_defaults(self) -> None:
        """A bare record has no session and zeroed counters."""
        metadata = GameMetadata(id="g", name="G")

        assert metadata.session_token is None
        assert metadata.improvement_count == 0
        assert metadata.session_improvement_count == 0
        assert metadata.context_size == 0
        assert metadata.last_improvement_cost == 0.0

    def test_camel_case_keys(self) -> None:
        """On-disk camelCase keys populate the fields."""
        metadata = GameMetadata.model_validate(
            {
                "id": "g",
                "name": "G",
                "sessionToken": "abc",
                "improvementCount": 3,
                "sessionImprovementCount": 2,
                "contextSize": 5000,
                "lastImprovementCost": 0.05,
                "lastImprovementAt": "2026-01-01T12:00:00Z",
            }
        )

        assert metadata.session_token == "abc"
        assert metadata.session_improvement_count == 2
        assert metadata.last_improvement_at == datetime(2026, 1, 1, 12, tzinfo=UTC)

    def test_legacy_session_key(self) -> None:
        """Older records stored the token as claudeSessionId."""
        metadata = GameMetadata.model_validate(
            {"id": "g", "name": "G", "claudeSessionId": "legacy"}
        )

        assert metadata.session_token == "legacy"
        assert '"sessionToken": "legacy"' in metadata.to_json()

    def test_session_count_cannot_exceed_total(self) -> None:
        """sessionImprovementCount is bounded by improvementCount."""
        with pytest.raises(ValidationError):
            GameMetadata(id="g", name="G", improvement_count=1, session_improvement_count=2)

    def test_negative_cost_rejected(self) -> None:
        """Costs are non-negative."""
        with pytest.raises(ValidationError):
            GameMetadata(id="g", name="G", last_improvement_cost=-0.1)

    def test_unknown_keys_preserved(self) -> None:
        """Keys written by other tools survive a round trip."""
        metadata = GameMetadata.model_validate({"id": "g", "name": "G", "theme": "space"})

        assert json.loads(metadata.to_json())["theme"] == "space"


class TestLoadMetadata:
    """Tests for load_metadata()."""

    def test_missing_directory(self, tmp_path: Path) -> None:
        """A missing game directory is reported as not found."""
        with pytest.raises(MetadataNotFoundError):
            load_metadata(tmp_path / "nope")

    def test_missing_file(self, tmp_path: Path) -> None:
        """A directory without metadata.json is reported as not found."""
        with pytest.raises(MetadataNotFoundError):
            load_metadata(tmp_path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        """Unparseable files are corrupt, not missing."""
        metadata_path(tmp_path).write_text("{not json")

        with pytest.raises(MetadataCorruptError, match="Failed to load game metadata"):
            load_metadata(tmp_path)

    def test_invalid_utf8(self, tmp_path: Path) -> None:
        """Undecodable bytes are corrupt, not an unhandled decode error."""
        metadata_path(tmp_path).write_bytes(b'{"id": "\xff"}')

        with pytest.raises(MetadataCorruptError):
            load_metadata(tmp_path)

    def test_invalid_record(self, tmp_path: Path) -> None:
        """Records failing validation are corrupt."""
        metadata_path(tmp_path).write_text(json.dumps({"id": "g"}))

        with pytest.raises(MetadataCorruptError):
            load_metadata(tmp_path)


class TestSaveMetadata:
    """Tests for save_metadata()."""

    def test_round_trip(self, tmp_path: Path) -> None:
        """A saved record loads back equal."""
        metadata = GameMetadata(
            id="g",
            name="G",
            session_token="abc",
            improvement_count=2,
            session_improvement_count=1,
            last_improvement_at=datetime(2026, 1, 1, 12, tzinfo=UTC),
        )

        save_metadata(tmp_path, metadata)

        assert load_metadata(tmp_path) == metadata

    def test_writes_camel_case(self, tmp_path: Path) -> None:
        """The file uses the on-disk key names and omits unset optionals."""
        save_metadata(tmp_path, GameMetadata(id="g", name="G", improvement_count=1))

        raw = json.loads(metadata_path(tmp_path).read_text())
        assert raw["improvementCount"] == 1
        assert "sessionToken" not in raw

    def test_no_temp_files_left(self, tmp_path: Path) -> None:
        """Only metadata.json remains after a save."""
        save_metadata(tmp_path, GameMetadata(id="g", name="G"))
        save_metadata(tmp_path, GameMetadata(id="g", name="G2"))

        assert [p.name for p in tmp_path.iterdir()] == ["metadata.json"]
        assert load_metadata(tmp_path).name == "G2"

    def test_new_file_mode(self, tmp_path: Path) -> None:
        """A new record is readable by group and others."""
        save_metadata(tmp_path, GameMetadata(id="g", name="G"))

        assert stat.S_IMODE(metadata_path(tmp_path).stat().st_mode) == 0o644

    def test_existing_mode_kept(self, tmp_path: Path) -> None:
        """Saving over a record keeps its permissions."""
        save_metadata(tmp_path, GameMetadata(id="g", name="G"))
        metadata_path(tmp_path).chmod(0o640)

        save_metadata(tmp_path, GameMetadata(id="g", name="G2"))

        assert stat.S_IMODE(metadata_path(tmp_path).stat().st_mode) == 0o640
