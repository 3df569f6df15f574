"""Shared fixtures: sample Xcode projects and an in-process plutil stand-in."""

import json
import re
import shutil
from pathlib import Path
from typing import Any

import pytest

from miniapp.exceptions import CommandFailedError

FIXTURES = Path(__file__).parent / "fixtures"

_SKIP = re.compile(r"(?:\s+|//[^\n]*|/\*.*?\*/)+", re.DOTALL)
_BARE = re.compile(r"[A-Za-z0-9_$/:.\-+<>]+")


class OpenStepParser:
    """Parses the OpenStep property list subset used by project.pbxproj."""

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0

    def parse(self) -> Any:
        try:
            value = self._value()
            self._skip()
        except IndexError as e:
            msg = "unexpected end of property list"
            raise ValueError(msg) from e
        if self.pos != len(self.text):
            msg = f"trailing content at offset {self.pos}"
            raise ValueError(msg)
        return value

    def _skip(self) -> None:
        match = _SKIP.match(self.text, self.pos)
        if match:
            self.pos = match.end()

    def _expect(self, token: str) -> None:
        self._skip()
        if self.text[self.pos] != token:
            msg = f"expected {token!r} at offset {self.pos}"
            raise ValueError(msg)
        self.pos += 1

    def _value(self) -> Any:
        self._skip()
        char = self.text[self.pos]
        if char == "{":
            return self._dictionary()
        if char == "(":
            return self._array()
        if char == '"':
            return self._quoted()
        match = _BARE.match(self.text, self.pos)
        if match is None:
            msg = f"unexpected {char!r} at offset {self.pos}"
            raise ValueError(msg)
        self.pos = match.end()
        return match.group(0)

    def _dictionary(self) -> dict[str, Any]:
        self.pos += 1
        result: dict[str, Any] = {}
        while True:
            self._skip()
            if self.text[self.pos] == "}":
                self.pos += 1
                return result
            key = self._value()
            self._expect("=")
            result[key] = self._value()
            self._expect(";")

    def _array(self) -> list[Any]:
        self.pos += 1
        items: list[Any] = []
        while True:
            self._skip()
            if self.text[self.pos] == ")":
                self.pos += 1
                return items
            items.append(self._value())
            self._skip()
            if self.text[self.pos] == ",":
                self.pos += 1

    def _quoted(self) -> str:
        self.pos += 1
        chars: list[str] = []
        while True:
            char = self.text[self.pos]
            if char == '"':
                self.pos += 1
                return "".join(chars)
            if char == "\\":
                escaped = self.text[self.pos + 1]
                chars.append({"n": "\n", "t": "\t"}.get(escaped, escaped))
                self.pos += 2
            else:
                chars.append(char)
                self.pos += 1


def parse_pbxproj(text: str) -> Any:
    """Decode project.pbxproj text (OpenStep or JSON) into plain Python data."""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return OpenStepParser(text).parse()


class FakeConverter:
    """Converter double: parses in-process and writes JSON back."""

    def __init__(self) -> None:
        self.converted: list[Path] = []
        self.written: list[Path] = []

    def to_json(self, path: Path) -> Any:
        self.converted.append(Path(path))
        try:
            return parse_pbxproj(Path(path).read_text(encoding="utf-8"))
        except ValueError as e:
            msg = f"plutil: {path}: {e}"
            raise CommandFailedError(msg) from e

    def write_plist(self, data: dict[str, Any], destination: Path) -> None:
        self.written.append(Path(destination))
        Path(destination).write_text(json.dumps(data, indent=2), encoding="utf-8")


def _copy_project(tmp_path: Path, fixture: str, name: str) -> Path:
    xcodeproj = tmp_path / f"{name}.xcodeproj"
    xcodeproj.mkdir(parents=True)
    shutil.copy(FIXTURES / fixture, xcodeproj / "project.pbxproj")
    return xcodeproj


@pytest.fixture
def converter() -> FakeConverter:
    """Create a converter double."""
    return FakeConverter()


@pytest.fixture
def parse():
    """Expose the pbxproj parser to tests."""
    return parse_pbxproj


@pytest.fixture
def app_project(tmp_path: Path) -> Path:
    """App.xcodeproj with one application target and no Run Script phases."""
    return _copy_project(tmp_path, "App.pbxproj", "App")


@pytest.fixture
def multi_project(tmp_path: Path) -> Path:
    """Multi.xcodeproj with two application targets and a SwiftLint phase."""
    return _copy_project(tmp_path, "Multi.pbxproj", "Multi")
