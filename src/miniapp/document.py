"""Project document loading and atomic persistence."""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

import jsonschema

from .exceptions import CommandFailedError, DocumentUnreadableError, MiniAppError
from .models import NativeTarget

if TYPE_CHECKING:
    from collections.abc import Callable

    from .converter import ProjectConverter

# Top level of a converted project.pbxproj: a mapping whose `objects` entry
# maps identifiers to records.
PROJECT_GRAPH_SCHEMA: dict[str, Any] = {
    "$schema": "http://json-schema.org/draft-07/schema#",
    "title": "project.pbxproj object graph",
    "type": "object",
    "required": ["objects"],
    "properties": {
        "objects": {
            "type": "object",
            "additionalProperties": {"type": "object"},
        },
    },
}


@dataclass
class ProjectDocument:
    """A project.pbxproj held both as raw text and as an object graph."""

    path: Path
    text: str
    data: dict[str, Any]

    @property
    def newline(self) -> str:
        """Line ending used by the raw text."""
        return "\r\n" if "\r\n" in self.text else "\n"

    @property
    def objects(self) -> dict[str, dict[str, Any]]:
        return self.data["objects"]

    def native_targets(self) -> list[NativeTarget]:
        """All PBXNativeTarget records, ordered by identifier."""
        targets = []
        for object_id in sorted(self.objects):
            record = self.objects[object_id]
            if record.get("isa") == "PBXNativeTarget":
                targets.append(NativeTarget.from_record(object_id, record))
        return targets

    def phase_ids_named(self, marker_name: str) -> list[str]:
        """Identifiers of every record whose name equals the marker."""
        return [
            object_id
            for object_id, record in self.objects.items()
            if record.get("name") == marker_name
        ]


def load_document(path: Path, converter: ProjectConverter) -> ProjectDocument:
    """Load project.pbxproj as raw text plus object graph.

    Args:
        path: Path to project.pbxproj
        converter: Converter producing the JSON view

    Returns:
        Loaded document

    Raises:
        DocumentUnreadableError: If the file is missing, the converter rejects
            it, or the converted graph has the wrong shape
    """
    path = Path(path)
    if not path.is_file():
        msg = f"project.pbxproj not found at {path}"
        raise DocumentUnreadableError(msg, details={"path": str(path)})

    try:
        with path.open(encoding="utf-8", newline="") as f:
            text = f.read()
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Failed to read {path}: {e}"
        raise DocumentUnreadableError(msg, details={"path": str(path)}) from e

    try:
        data = converter.to_json(path)
    except CommandFailedError as e:
        msg = f"Failed to convert {path} to JSON: {e}"
        raise DocumentUnreadableError(msg, details={"path": str(path)}) from e

    try:
        jsonschema.validate(data, PROJECT_GRAPH_SCHEMA)
    except jsonschema.ValidationError as e:
        msg = f"pbxproj json is not a record of records: {e.message}"
        raise DocumentUnreadableError(
            msg,
            details={"path": str(path), "location": list(e.absolute_path)},
        ) from e

    return ProjectDocument(path=path, text=text, data=data)


def save_text(path: Path, text: str) -> None:
    """Atomically replace ``path`` with ``text``."""

    def write(temp_path: Path) -> None:
        temp_path.write_text(text, encoding="utf-8", newline="")

    replace_atomically(Path(path), write)


def replace_atomically(path: Path, write: Callable[[Path], None]) -> None:
    """Write through a sibling temporary file, then rename it over ``path``.

    The original file is untouched unless ``write`` succeeds.

    Raises:
        MiniAppError: If the file cannot be written
    """
    fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    os.close(fd)
    temp_path = Path(temp_name)

    try:
        write(temp_path)
        if path.exists():
            os.chmod(temp_path, path.stat().st_mode & 0o777)
        os.replace(temp_path, path)
    except OSError as e:
        temp_path.unlink(missing_ok=True)
        msg = f"Failed to write {path}: {e}"
        raise MiniAppError(msg, details={"path": str(path)}) from e
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise
