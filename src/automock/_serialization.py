"""
Wire format of metadata trees (JSON or YAML).

Metadata trees are acyclic by construction, so they can be stored verbatim.
Values that the chosen format cannot represent, such as a captured ``mockImpl``,
make the dump fail with the error of the underlying library.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum, auto
from pathlib import Path
from typing import Final

import yaml

from automock._metadata import MockMetadata


class MetadataFormat(Enum):
    JSON = auto()
    YAML = auto()


_SUFFIX_FORMATS: Final[Mapping[str, MetadataFormat]] = {
    ".json": MetadataFormat.JSON,
    ".yaml": MetadataFormat.YAML,
    ".yml": MetadataFormat.YAML,
}


def dump_metadata(
    metadata: MockMetadata, *, format: MetadataFormat = MetadataFormat.JSON
) -> str:
    data = metadata.to_dict()
    match format:
        case MetadataFormat.JSON:
            return json.dumps(data, indent=2)
        case MetadataFormat.YAML:
            return yaml.safe_dump(data, sort_keys=False)


def load_metadata(
    text: str, *, format: MetadataFormat = MetadataFormat.JSON
) -> MockMetadata:
    """
    Parse a metadata tree from text.

    :raises ValueError: If the text does not describe a metadata node.
    """
    match format:
        case MetadataFormat.JSON:
            data = json.loads(text)
        case MetadataFormat.YAML:
            data = yaml.safe_load(text)
    return MockMetadata.from_dict(data)


def metadata_format_for(path: Path) -> MetadataFormat:
    """
    Determine the format of a metadata file from its suffix.

    :raises ValueError: If the suffix is not recognized.
    """
    try:
        return _SUFFIX_FORMATS[path.suffix.lower()]
    except KeyError:
        raise ValueError(
            f"Unrecognized metadata file format: {path.name}. "
            f"Expected .json, .yaml, or .yml"
        ) from None


def dump_metadata_file(metadata: MockMetadata, path: Path) -> None:
    text = dump_metadata(metadata, format=metadata_format_for(path))
    path.write_text(text, encoding="utf-8")


def load_metadata_file(path: Path) -> MockMetadata:
    format = metadata_format_for(path)
    content = path.read_text(encoding="utf-8")
    try:
        return load_metadata(content, format=format)
    except ValueError as error:
        error.add_note(f"While loading {path}...")
        raise
