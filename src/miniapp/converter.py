"""Conversion between project.pbxproj and JSON through plutil."""

from __future__ import annotations

import json
import subprocess
import tempfile
from pathlib import Path
from typing import Any, Protocol

from .exceptions import CommandFailedError


class ProjectConverter(Protocol):
    """Protocol for bidirectional project.pbxproj <-> JSON converters."""

    def to_json(self, path: Path) -> Any:
        """Convert the property list at ``path`` into decoded JSON."""
        ...

    def write_plist(self, data: dict[str, Any], destination: Path) -> None:
        """Serialize ``data`` as a property list at ``destination``."""
        ...


class PlistConverter:
    """Runs plutil as a child process.

    Converted output always goes to a temporary file and the child's stdout
    is discarded, so large projects cannot fill a pipe while we wait for the
    process to exit.
    """

    def __init__(self, executable: str = "/usr/bin/plutil") -> None:
        """Initialize converter.

        Args:
            executable: Path to the plutil binary
        """
        self.executable = executable

    def to_json(self, path: Path) -> Any:
        """Convert a property list file to JSON and decode it.

        Args:
            path: Property list to convert

        Returns:
            Decoded JSON value

        Raises:
            CommandFailedError: If plutil fails or writes unreadable JSON
        """
        with tempfile.TemporaryDirectory(prefix="miniapp-") as temp_dir:
            json_path = Path(temp_dir) / "project.json"
            self._run(["-convert", "json", "-o", str(json_path), str(path)])

            try:
                return json.loads(json_path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
                msg = f"plutil produced unreadable JSON for {path}: {e}"
                raise CommandFailedError(msg, details={"path": str(path)}) from e

    def write_plist(self, data: dict[str, Any], destination: Path) -> None:
        """Serialize data as an XML property list, which Xcode reads natively.

        Args:
            data: Root of the project object graph
            destination: File to write

        Raises:
            CommandFailedError: If plutil fails
        """
        with tempfile.TemporaryDirectory(prefix="miniapp-") as temp_dir:
            json_path = Path(temp_dir) / "project.json"
            json_path.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            self._run(["-convert", "xml1", "-o", str(destination), str(json_path)])

    def _run(self, arguments: list[str]) -> None:
        command = [self.executable, *arguments]
        printable = " ".join(command)

        try:
            completed = subprocess.run(
                command,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.PIPE,
                check=False,
            )
        except OSError as e:
            msg = f"{printable} failed: {e}"
            raise CommandFailedError(msg, details={"command": command}) from e

        if completed.returncode != 0:
            stderr = completed.stderr.decode("utf-8", errors="replace").strip()
            msg = f"{printable} failed: {stderr}"
            raise CommandFailedError(
                msg,
                details={"command": command, "returncode": completed.returncode},
            )
