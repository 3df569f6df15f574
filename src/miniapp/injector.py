"""Idempotent injection of the Run Script build phase into project.pbxproj."""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from .document import load_document, replace_atomically, save_text
from .exceptions import (
    BuildStepListMalformedError,
    BuildStepListMissingError,
    NoInsertionPointError,
    TargetBlockNotFoundError,
)
from .ids import generate_object_id
from .models import (
    InjectionOutcome,
    InjectionStatus,
    MiniAppConfig,
    PersistenceStrategy,
    ShellScriptBuildPhase,
)
from .resolver import find_app_targets, resolve_target

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .converter import ProjectConverter
    from .document import ProjectDocument
    from .models import NativeTarget

SECTION_BEGIN = "/* Begin PBXShellScriptBuildPhase section */"
SECTION_END = "/* End PBXShellScriptBuildPhase section */"

# New sections go in front of the first of these that exists.
SECTION_ANCHORS = (
    "/* Begin PBXNativeTarget section */",
    "/* Begin PBXProject section */",
)

_BUILD_PHASES_OPEN = re.compile(r"^([ \t]*)buildPhases = \(", re.MULTILINE)

_ITEM = r"\s*([^\s,/()]+)((?:\s*/\*.*?\*/)?)\s*"
_INLINE_ITEM = re.compile(_ITEM)
_INLINE_LIST = re.compile(rf"(?:{_ITEM},)*(?:{_ITEM})?\s*")


def _line_start(content: str, index: int) -> int:
    return content.rfind("\n", 0, index) + 1


def remove_phase_entries(
    content: str,
    marker_name: str,
    phase_ids: Iterable[str] = (),
) -> str:
    """Remove every marker-named phase block and every reference to it.

    Lines are matched by the ``/* marker */`` comment Xcode writes next to
    each identifier, and by the known identifiers of marker-named records.

    Args:
        content: project.pbxproj text
        marker_name: Name of the injected phase
        phase_ids: Identifiers of marker-named records in the object graph

    Returns:
        Text without the phase records and their buildPhases entries
    """
    comment = f"/* {marker_name} */"
    ids = sorted(phase_ids)
    id_line = (
        re.compile(r"^\s*(?:" + "|".join(map(re.escape, ids)) + r")\b")
        if ids
        else None
    )

    kept: list[str] = []
    inside_block = False
    for line in content.splitlines(keepends=True):
        stripped = line.strip()
        if inside_block:
            if stripped == "};":
                inside_block = False
            continue
        if comment in line or (id_line is not None and id_line.match(line)):
            # Multi-line records open with "= {" and close with a bare "};"
            if stripped.endswith("= {"):
                inside_block = True
            continue
        kept.append(line)

    return "".join(kept)


def find_new_section_index(content: str) -> int | None:
    """Offset at which a new PBXShellScriptBuildPhase section can start."""
    for anchor in SECTION_ANCHORS:
        index = content.find(anchor)
        if index != -1:
            return _line_start(content, index)
    return None


def normalize_section_whitespace(content: str) -> str:
    """Collapse blank lines directly inside the shell script section markers."""
    content = re.sub(
        "(" + re.escape(SECTION_BEGIN) + r"\r?\n)(?:[ \t]*\r?\n)+",
        r"\1",
        content,
    )
    return re.sub(r"(\r?\n)(?:[ \t]*\r?\n)+(" + re.escape(SECTION_END) + ")", r"\1\2", content)


def insert_phase_block(content: str, block: str, newline: str = "\n") -> str:
    """Insert a phase record block into the shell script section.

    The block lands at the end of the last existing section. Without one, a
    new section is created before the native target section, or before the
    project section.

    Raises:
        NoInsertionPointError: If none of the anchors exist
    """
    end_index = content.rfind(SECTION_END)
    if end_index != -1:
        insert_at = _line_start(content, end_index)
        updated = content[:insert_at] + block + content[insert_at:]
        return normalize_section_whitespace(updated)

    insert_at = find_new_section_index(content)
    if insert_at is None:
        msg = (
            "Unable to insert PBXShellScriptBuildPhase section: no section markers found. "
            "The text strategy needs an OpenStep project.pbxproj; "
            "use --strategy roundtrip for XML or JSON property lists"
        )
        raise NoInsertionPointError(msg, details={"anchors": list(SECTION_ANCHORS)})

    section = f"{SECTION_BEGIN}{newline}{block}{SECTION_END}{newline}{newline}"
    updated = content[:insert_at] + section + content[insert_at:]
    return normalize_section_whitespace(updated)


def split_inline_list(inner: str) -> list[str] | None:
    """Split the items of a one-line ``( A /* a */, B );`` list.

    Returns:
        Items with their comments, or None if the text is not a flat list
    """
    if not _INLINE_LIST.fullmatch(inner):
        return None
    return [
        f"{match.group(1)}{match.group(2) or ''}"
        for match in _INLINE_ITEM.finditer(inner)
    ]


def insert_phase_reference(
    content: str,
    phase_id: str,
    target_id: str,
    marker_name: str,
    newline: str = "\n",
) -> str:
    """Append ``phase_id`` to the target's buildPhases list.

    The entry is indented one level deeper than the ``buildPhases = (`` line
    and goes in front of the closing ``);`` line. A closing line left at
    column 0 by an older release is re-indented. A list written on one line
    is expanded to one item per line.

    Raises:
        TargetBlockNotFoundError: If the target record is not in the text
        BuildStepListMissingError: If the record has no buildPhases list
        BuildStepListMalformedError: If the list is never closed or is not
            a flat list of identifiers
    """
    target_pattern = re.compile(
        rf"^([ \t]*){re.escape(target_id)}(?: /\*.*?\*/)? = \{{[ \t]*\r?$",
        re.MULTILINE,
    )
    target_match = target_pattern.search(content)
    if target_match is None:
        msg = f"Target block not found in pbxproj: {target_id}"
        raise TargetBlockNotFoundError(msg, details={"target_id": target_id})

    block_close = re.compile(rf"^{re.escape(target_match.group(1))}\}};", re.MULTILINE)
    close_match = block_close.search(content, target_match.end())
    block_end = close_match.start() if close_match else len(content)

    list_match = _BUILD_PHASES_OPEN.search(content, target_match.end(), block_end)
    if list_match is None:
        msg = f"buildPhases list missing for target {target_id}"
        raise BuildStepListMissingError(msg, details={"target_id": target_id})

    closing = content.find(");", list_match.end(), block_end)
    if closing == -1:
        msg = f"buildPhases list malformed for target {target_id}"
        raise BuildStepListMalformedError(msg, details={"target_id": target_id})

    base_indent = list_match.group(1)
    entry_indent = base_indent + "\t"
    entry = f"{entry_indent}{phase_id} /* {marker_name} */,{newline}"

    closing_line = _line_start(content, closing)
    if closing_line <= list_match.start():
        # "buildPhases = ( A, B );" on a single line
        items = split_inline_list(content[list_match.end():closing])
        if items is None:
            msg = f"buildPhases list malformed for target {target_id}"
            raise BuildStepListMalformedError(msg, details={"target_id": target_id})
        existing = "".join(f"{entry_indent}{item},{newline}" for item in items)
        return (
            f"{content[:list_match.end()]}{newline}{existing}{entry}"
            f"{base_indent}{content[closing:]}"
        )

    repair = base_indent if content.startswith(");", closing_line) else ""
    return content[:closing_line] + entry + repair + content[closing_line:]


class InjectionStrategy(ABC):
    """Persistence strategy for one injection run."""

    def __init__(self, marker_name: str) -> None:
        self.marker_name = marker_name

    @abstractmethod
    def has_phase(self, document: ProjectDocument) -> bool:
        """Check whether a marker-named phase already exists."""

    @abstractmethod
    def remove_phases(self, document: ProjectDocument) -> None:
        """Remove every marker-named phase and the references to it."""

    @abstractmethod
    def add_phase(
        self,
        document: ProjectDocument,
        phase: ShellScriptBuildPhase,
        phase_id: str,
        target: NativeTarget,
    ) -> None:
        """Insert the phase record and append it to the target's phases."""

    @abstractmethod
    def save(self, document: ProjectDocument) -> None:
        """Persist the edited document."""


class TextSurgeryStrategy(InjectionStrategy):
    """Edits the raw text around section markers.

    Everything outside the edited regions stays byte-for-byte identical,
    line endings included. Only OpenStep project files carry the section
    markers this relies on; a file rewritten as an XML plist by the round
    trip strategy has to keep using that strategy.
    """

    def has_phase(self, document: ProjectDocument) -> bool:
        if document.phase_ids_named(self.marker_name):
            return True
        return f"/* {self.marker_name} */" in document.text

    def remove_phases(self, document: ProjectDocument) -> None:
        document.text = remove_phase_entries(
            document.text,
            self.marker_name,
            document.phase_ids_named(self.marker_name),
        )

    def add_phase(
        self,
        document: ProjectDocument,
        phase: ShellScriptBuildPhase,
        phase_id: str,
        target: NativeTarget,
    ) -> None:
        newline = document.newline
        block = phase.to_pbxproj(phase_id, newline=newline)
        text = insert_phase_block(document.text, block, newline)
        document.text = insert_phase_reference(text, phase_id, target.id, phase.name, newline)

    def save(self, document: ProjectDocument) -> None:
        save_text(document.path, document.text)


class RoundTripStrategy(InjectionStrategy):
    """Edits the object graph and re-serializes the whole document.

    Formatting and comments that the graph does not model are lost.
    """

    def __init__(self, marker_name: str, converter: ProjectConverter) -> None:
        super().__init__(marker_name)
        self.converter = converter

    def has_phase(self, document: ProjectDocument) -> bool:
        return bool(document.phase_ids_named(self.marker_name))

    def remove_phases(self, document: ProjectDocument) -> None:
        stale = set(document.phase_ids_named(self.marker_name))
        for object_id in stale:
            del document.objects[object_id]

        for record in document.objects.values():
            phases = record.get("buildPhases")
            if isinstance(phases, list):
                record["buildPhases"] = [p for p in phases if p not in stale]

    def add_phase(
        self,
        document: ProjectDocument,
        phase: ShellScriptBuildPhase,
        phase_id: str,
        target: NativeTarget,
    ) -> None:
        record = document.objects.get(target.id)
        if record is None:
            msg = f"Target block not found in pbxproj: {target.id}"
            raise TargetBlockNotFoundError(msg, details={"target_id": target.id})

        phases = record.get("buildPhases")
        if phases is None:
            msg = f"buildPhases list missing for target {target.id}"
            raise BuildStepListMissingError(msg, details={"target_id": target.id})
        if not isinstance(phases, list):
            msg = f"buildPhases list malformed for target {target.id}"
            raise BuildStepListMalformedError(msg, details={"target_id": target.id})

        document.objects[phase_id] = phase.to_record()
        phases.append(phase_id)

    def save(self, document: ProjectDocument) -> None:
        replace_atomically(
            document.path,
            lambda temp_path: self.converter.write_plist(document.data, temp_path),
        )


class BuildPhaseInjector:
    """Injects the dependency generator Run Script phase into a target."""

    def __init__(self, config: MiniAppConfig, converter: ProjectConverter) -> None:
        """Initialize injector.

        Args:
            config: Tool configuration (marker name, default strategy)
            converter: project.pbxproj <-> JSON converter
        """
        self.config = config
        self.converter = converter

    def strategy_for(self, strategy: PersistenceStrategy) -> InjectionStrategy:
        """Build the persistence strategy implementation."""
        if strategy == PersistenceStrategy.ROUNDTRIP:
            return RoundTripStrategy(self.config.marker_name, self.converter)
        return TextSurgeryStrategy(self.config.marker_name)

    def inject(
        self,
        pbxproj_path: Path,
        *,
        target_name: str | None = None,
        preferred_target_name: str | None = None,
        script_relative_path: str | None = None,
        force: bool = False,
        strategy: PersistenceStrategy | None = None,
    ) -> InjectionOutcome:
        """Add the Run Script phase unless it is already present.

        Args:
            pbxproj_path: Path to project.pbxproj
            target_name: Explicit target display name
            preferred_target_name: Name to try when several targets exist
            script_relative_path: Generator path relative to $SRCROOT
            force: Replace an existing phase instead of skipping
            strategy: Persistence strategy, defaults to the configured one

        Returns:
            Outcome describing what changed
        """
        pbxproj_path = Path(pbxproj_path)
        document = load_document(pbxproj_path, self.converter)
        target = resolve_target(
            find_app_targets(document),
            target_name=target_name,
            preferred_name=preferred_target_name,
        )
        backend = self.strategy_for(strategy or self.config.strategy)

        status = InjectionStatus.INSERTED
        if backend.has_phase(document):
            if not force:
                return InjectionOutcome(
                    status=InjectionStatus.SKIPPED,
                    project_file=pbxproj_path,
                    target_name=target.display_name,
                )
            backend.remove_phases(document)
            status = InjectionStatus.REPLACED

        phase_id = generate_object_id(document.objects)
        phase = ShellScriptBuildPhase.for_script(
            self.config.marker_name,
            script_relative_path or self.config.script_relative_path,
        )
        backend.add_phase(document, phase, phase_id, target)
        backend.save(document)

        return InjectionOutcome(
            status=status,
            project_file=pbxproj_path,
            target_name=target.display_name,
            phase_id=phase_id,
        )
