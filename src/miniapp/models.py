"""Core data models for miniapp."""

from __future__ import annotations

import re
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

APPLICATION_PRODUCT_TYPE = "com.apple.product-type.application"
UNKNOWN_TARGET_NAME = "(unknown)"

# Characters allowed in an unquoted OpenStep string.
_UNQUOTED_PBX_STRING = re.compile(r"^[A-Za-z0-9_$/:.\-]+$")


def quote_pbx_string(value: str) -> str:
    """Render a string the way project.pbxproj stores it."""
    if value and _UNQUOTED_PBX_STRING.match(value):
        return value
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


class PersistenceStrategy(str, Enum):
    """How an edited project document is written back to disk."""

    TEXT = "text"            # Surgical edits on the raw text
    ROUNDTRIP = "roundtrip"  # Full re-serialization through the converter


class InjectionStatus(str, Enum):
    """Result of a single injection run."""

    INSERTED = "inserted"
    REPLACED = "replaced"
    SKIPPED = "skipped"


class MiniAppConfig(BaseModel):
    """Tool configuration passed explicitly from the entry point."""

    model_config = ConfigDict(extra="forbid")

    version: str = Field(default="0.0.0", description="Tool release version")
    marker_name: str = Field(
        default="[SDM] Generate Dependencies",
        description="Name of the injected Run Script phase, used as idempotency key",
    )
    scripts_dir: str = Field(
        default="Scripts",
        description="Directory next to the .xcodeproj that receives the generator",
    )
    script_name: str = Field(
        default="sdm-gen-deps.sh",
        description="File name of the generator script",
    )
    manifest_name: str = Field(
        default="miniapp-deps.json",
        description="File name of the manifest written at build time",
    )
    converter_path: str = Field(
        default="/usr/bin/plutil",
        description="Property list converter executable",
    )
    strategy: PersistenceStrategy = Field(
        default=PersistenceStrategy.TEXT,
        description="Persistence strategy for project.pbxproj edits",
    )

    @field_validator("marker_name")
    @classmethod
    def validate_marker_name(cls, v: str) -> str:
        """Marker names end up inside /* */ comments and quoted strings."""
        if not v.strip() or "*/" in v or "\n" in v:
            msg = "Marker name must be a non-empty single line without '*/'"
            raise ValueError(msg)
        return v

    @field_validator("script_name", "manifest_name")
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        """Validate plain file names."""
        if not v or "/" in v or "'" in v or '"' in v:
            msg = "File names must be non-empty and contain no '/' or quotes"
            raise ValueError(msg)
        return v

    @property
    def script_relative_path(self) -> str:
        """Generator script path relative to $SRCROOT."""
        return f"{self.scripts_dir.strip('/')}/{self.script_name}"


class NativeTarget(BaseModel):
    """A PBXNativeTarget record from the object graph."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Object identifier")
    name: str | None = Field(default=None)
    product_name: str | None = Field(default=None, alias="productName")
    product_type: str | None = Field(default=None, alias="productType")
    build_phases: list[str] = Field(default_factory=list, alias="buildPhases")

    @classmethod
    def from_record(cls, object_id: str, record: dict) -> NativeTarget:
        """Build a target from its raw object graph record."""
        return cls.model_validate({**record, "id": object_id})

    @property
    def display_name(self) -> str:
        """Target name, falling back to its product name."""
        return self.name or self.product_name or UNKNOWN_TARGET_NAME

    @property
    def is_application(self) -> bool:
        return self.product_type == APPLICATION_PRODUCT_TYPE


class ShellScriptBuildPhase(BaseModel):
    """A PBXShellScriptBuildPhase record."""

    name: str = Field(..., description="Phase name shown in Xcode")
    shell_script: str = Field(..., description="Script body run by shell_path")
    shell_path: str = Field(default="/bin/sh")

    @classmethod
    def for_script(cls, name: str, script_relative_path: str) -> ShellScriptBuildPhase:
        """Create a phase that runs a script stored under $SRCROOT."""
        return cls(name=name, shell_script=f'"$SRCROOT/{script_relative_path}"\n')

    def to_record(self) -> dict[str, object]:
        """Render the phase as an object graph record.

        Scalars are strings, matching what plutil produces for OpenStep input.
        """
        return {
            "isa": "PBXShellScriptBuildPhase",
            "buildActionMask": "2147483647",
            "files": [],
            "inputPaths": [],
            "name": self.name,
            "outputPaths": [],
            "runOnlyForDeploymentPostprocessing": "0",
            "shellPath": self.shell_path,
            "shellScript": self.shell_script,
            "showEnvVarsInLog": "0",
        }

    def to_pbxproj(self, object_id: str, indent: str = "\t\t", newline: str = "\n") -> str:
        """Render the phase as a project.pbxproj object block."""
        inner = indent + "\t"
        lines = [
            f"{indent}{object_id} /* {self.name} */ = {{",
            f"{inner}isa = PBXShellScriptBuildPhase;",
            f"{inner}buildActionMask = 2147483647;",
            f"{inner}files = (",
            f"{inner});",
            f"{inner}inputPaths = (",
            f"{inner});",
            f"{inner}name = {quote_pbx_string(self.name)};",
            f"{inner}outputPaths = (",
            f"{inner});",
            f"{inner}runOnlyForDeploymentPostprocessing = 0;",
            f"{inner}shellPath = {quote_pbx_string(self.shell_path)};",
            f"{inner}shellScript = {quote_pbx_string(self.shell_script)};",
            f"{inner}showEnvVarsInLog = 0;",
            f"{indent}}};",
        ]
        return newline.join(lines) + newline


class InjectionOutcome(BaseModel):
    """What an injection run did to the project file."""

    status: InjectionStatus = Field(..., description="Inserted, replaced or skipped")
    project_file: Path = Field(..., description="Edited project.pbxproj")
    target_name: str | None = Field(
        default=None,
        description="Display name of the target that received the phase",
    )
    phase_id: str | None = Field(
        default=None,
        description="Identifier of the new phase record",
    )


class InstallOptions(BaseModel):
    """Options accepted by `miniapp host sdk install`."""

    project_path: Path | None = Field(default=None)
    target_name: str | None = Field(default=None)
    force: bool = Field(default=False)
    strategy: PersistenceStrategy | None = Field(
        default=None,
        description="Overrides the configured persistence strategy",
    )


class InstallResult(BaseModel):
    """Summary of one `miniapp host sdk install` run."""

    xcodeproj: Path = Field(..., description="Project that was modified")
    script_path: Path = Field(..., description="Installed generator script")
    injection: InjectionOutcome = Field(..., description="Build phase injection outcome")
