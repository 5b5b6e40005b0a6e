import json
from pathlib import Path
from types import SimpleNamespace

import pytest

from automock import (
    MetadataFormat,
    MockMetadata,
    dump_metadata,
    dump_metadata_file,
    generate_from_metadata,
    get_metadata,
    get_mock_function,
    load_metadata,
    load_metadata_file,
)


class Greeter:
    greeting = "hello"

    def greet(self, name: str) -> str:
        return f"{self.greeting} {name}"


def _cyclic_metadata() -> MockMetadata:
    component = SimpleNamespace(label="root", nothing=None)
    component.self = component
    metadata = get_metadata(component)
    assert metadata is not None
    return metadata


class TestTextFormats:
    """Test dumping and loading metadata text."""

    def test_json_wire_keys(self) -> None:
        text = dump_metadata(_cyclic_metadata())
        assert json.loads(text) == {
            "type": "object",
            "refID": 0,
            "members": {
                "label": {"type": "constant", "value": "root"},
                "nothing": {"type": "null", "value": None},
                "self": {"ref": 0},
            },
        }

    @pytest.mark.parametrize("format", [MetadataFormat.JSON, MetadataFormat.YAML])
    def test_round_trip(self, format: MetadataFormat) -> None:
        metadata = get_metadata(Greeter)
        assert metadata is not None
        text = dump_metadata(metadata, format=format)
        assert load_metadata(text, format=format) == metadata

    def test_yaml_keeps_member_order(self) -> None:
        text = dump_metadata(_cyclic_metadata(), format=MetadataFormat.YAML)
        loaded = load_metadata(text, format=MetadataFormat.YAML)
        assert loaded.members is not None
        assert list(loaded.members) == ["label", "nothing", "self"]

    def test_loaded_metadata_generates_shared_identity(self) -> None:
        loaded = load_metadata(dump_metadata(_cyclic_metadata()))
        mock = generate_from_metadata(loaded)
        assert mock.self is mock
        assert mock.label == "root"

    def test_mock_implementation_cannot_be_dumped_as_json(self) -> None:
        original = get_mock_function().mock_implementation(lambda: None)
        metadata = get_metadata(original)
        assert metadata is not None
        with pytest.raises(TypeError):
            dump_metadata(metadata)

    def test_malformed_text(self) -> None:
        with pytest.raises(ValueError, match="Metadata node must be a mapping, got list"):
            load_metadata("[1, 2]")


class TestFiles:
    """Test dumping and loading metadata files."""

    @pytest.mark.parametrize("file_name", ["greeter.json", "greeter.yaml", "greeter.yml"])
    def test_round_trip(self, tmp_path: Path, file_name: str) -> None:
        metadata = get_metadata(Greeter)
        assert metadata is not None
        path = tmp_path / file_name
        dump_metadata_file(metadata, path)
        assert load_metadata_file(path) == metadata

    def test_yaml_file_is_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "cycle.yaml"
        dump_metadata_file(_cyclic_metadata(), path)
        assert path.read_text(encoding="utf-8").startswith("type: object\n")

    def test_unrecognized_suffix(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="Unrecognized metadata file format: cycle.toml"):
            dump_metadata_file(_cyclic_metadata(), tmp_path / "cycle.toml")

    def test_malformed_file_notes_path(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text('"not a node"', encoding="utf-8")
        with pytest.raises(ValueError, match="got str") as excinfo:
            load_metadata_file(path)
        assert excinfo.value.__notes__ == [f"While loading {path}..."]
