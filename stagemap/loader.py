"""File loader for stagemap map definitions and snapshots."""

import json
import logging
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from stagemap.exceptions import LoadError, SnapshotError
from stagemap.models import MapDefinition, MapSnapshot
from stagemap.schema import validate_map_definition

logger = logging.getLogger(__name__)

YAML_SUFFIXES = (".yml", ".yaml")
JSON_SUFFIXES = (".json",)

# Sections every snapshot must carry as lists
SNAPSHOT_SECTIONS = ("stages", "paths", "exerciseBundles")


class FileReader:
    """Simple file reading abstraction with format detection."""

    @staticmethod
    def read_file(file_path: str | Path) -> Any:
        """
        Read and parse file content based on extension.

        Raises:
            LoadError: For I/O or parsing errors
        """
        file_path = Path(file_path)

        if not file_path.exists():
            raise LoadError(f"File not found: {file_path}", str(file_path))

        suffix = file_path.suffix.lower()
        if suffix not in YAML_SUFFIXES + JSON_SUFFIXES:
            raise LoadError(f"Unsupported file format: {file_path.suffix}", str(file_path))

        try:
            with open(file_path, encoding="utf-8") as f:
                if suffix in YAML_SUFFIXES:
                    try:
                        return FileReader._parse_yaml(f)
                    except Exception as e:
                        raise LoadError(
                            f"Error parsing YAML in {file_path}: {e}", str(file_path)
                        ) from e
                try:
                    return FileReader._parse_json(f)
                except json.JSONDecodeError as e:
                    raise LoadError(
                        f"Error parsing JSON in {file_path}: {e}", str(file_path)
                    ) from e

        except PermissionError as e:
            raise LoadError(f"Permission denied reading {file_path}", str(file_path)) from e
        except UnicodeDecodeError as e:
            raise LoadError(f"Encoding error reading {file_path}: {e}", str(file_path)) from e

    @staticmethod
    def write_file(file_path: str | Path, data: Any) -> None:
        """Write data as YAML or JSON depending on the extension."""
        file_path = Path(file_path)
        suffix = file_path.suffix.lower()
        if suffix not in YAML_SUFFIXES + JSON_SUFFIXES:
            raise LoadError(f"Unsupported file format: {file_path.suffix}", str(file_path))

        try:
            file_path.parent.mkdir(parents=True, exist_ok=True)
            with open(file_path, "w", encoding="utf-8") as f:
                if suffix in YAML_SUFFIXES:
                    yaml = YAML(typ="safe", pure=True)
                    yaml.default_flow_style = False
                    yaml.dump(data, f)
                else:
                    json.dump(data, f, indent=2)
                    f.write("\n")
        except OSError as e:
            raise LoadError(f"Failed to write {file_path}: {e}", str(file_path)) from e

    @staticmethod
    def _parse_yaml(file_handle) -> Any:
        """Parse YAML content."""
        yaml = YAML(typ="safe", pure=True)
        return yaml.load(file_handle)

    @staticmethod
    def _parse_json(file_handle) -> Any:
        """Parse JSON content."""
        return json.load(file_handle)


def parse_map(data: Any, source: str | None = None) -> MapDefinition:
    """
    Check the structure of a map definition.

    The data can contain either the map under a ``map`` key or the map
    definition directly at the root. Only the structure needed to build an
    engine is checked; malformed details the engine degrades on are left to
    it.

    Raises:
        LoadError: If the structure is not a map definition
    """
    if not isinstance(data, dict):
        raise LoadError("Map file must contain a dictionary", source)

    definition = data["map"] if "map" in data else data
    if not isinstance(definition, dict):
        raise LoadError("'map' must be a dictionary", source)

    if not isinstance(definition.get("elements"), list):
        raise LoadError(
            f"Map definition needs an 'elements' list. Found keys: {list(definition.keys())}",
            source,
        )

    validate_map_definition(definition, source)
    return definition  # type: ignore[return-value]


def parse_snapshot(data: Any) -> MapSnapshot:
    """
    Check the structure of a persisted snapshot.

    Raises:
        SnapshotError: If a section is missing or has the wrong type
    """
    if not isinstance(data, dict):
        raise SnapshotError("Snapshot must be a dictionary")

    for section in SNAPSHOT_SECTIONS:
        if not isinstance(data.get(section, []), list):
            raise SnapshotError(f"Snapshot section '{section}' must be a list", section)

    for section in ("livesLeft", "timeLeft"):
        value = data.get(section)
        if value is not None and (
            not isinstance(value, (int, float)) or isinstance(value, bool)
        ):
            raise SnapshotError(f"Snapshot value '{section}' must be a number", section)

    return data  # type: ignore[return-value]


def load_map(file_path: str | Path) -> MapDefinition:
    """
    Load a map definition from a YAML or JSON file.

    Args:
        file_path: Path to the map file

    Returns:
        Map definition

    Raises:
        LoadError: If the file cannot be loaded or is not a map definition
    """
    data = FileReader.read_file(file_path)
    definition = parse_map(data, str(file_path))
    logger.debug("Loaded map %s with %d elements", file_path, len(definition["elements"]))
    return definition


def load_snapshot(file_path: str | Path) -> MapSnapshot:
    """
    Load a persisted snapshot.

    Raises:
        LoadError: If the file cannot be read
        SnapshotError: If the content is not a snapshot
    """
    data = FileReader.read_file(file_path)
    return parse_snapshot(data)


def save_snapshot(snapshot: MapSnapshot, file_path: str | Path) -> None:
    """Write a snapshot as YAML or JSON depending on the extension."""
    FileReader.write_file(file_path, dict(snapshot))
    logger.debug("Saved snapshot to %s", file_path)
