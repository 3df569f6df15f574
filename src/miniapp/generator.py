"""Rendering and installation of the build-time dependency generator script."""

from __future__ import annotations

import os
import stat
from pathlib import Path

from .exceptions import MiniAppError
from .models import MiniAppConfig

EXTRACTOR_SOURCE = Path(__file__).with_name("manifest.py")
HEREDOC_DELIMITER = "PY"


def render_generator_script(config: MiniAppConfig, extractor_source: str | None = None) -> str:
    """Render the POSIX shell script Xcode runs on every build.

    The script never fails the build: every problem ends in an empty
    manifest and a zero exit status.

    Args:
        config: Tool configuration (manifest file name, converter path)
        extractor_source: Python source of the extractor, defaults to
            miniapp.manifest

    Returns:
        Script contents
    """
    if extractor_source is None:
        extractor_source = EXTRACTOR_SOURCE.read_text(encoding="utf-8")
    if any(line.strip() == HEREDOC_DELIMITER for line in extractor_source.splitlines()):
        msg = f"Extractor source contains the heredoc delimiter line '{HEREDOC_DELIMITER}'"
        raise MiniAppError(msg)

    manifest = config.manifest_name
    converter = config.converter_path
    header = f"""\
#!/bin/sh
# Generated by miniapp {config.version}. Writes {manifest} for the app bundle.
# This script must never fail the build.

OUTPUT_PATH="$TARGET_BUILD_DIR/$UNLOCALIZED_RESOURCES_FOLDER_PATH/{manifest}"
mkdir -p "$(dirname "$OUTPUT_PATH")" 2>/dev/null || true

write_empty_manifest() {{
  echo "[SDM] WARN: $1; writing empty {manifest}" >&2
  echo '[]' > "$OUTPUT_PATH" 2>/dev/null || true
  exit 0
}}

# Resolve pbxproj path
PBXPROJ=""
if [ -n "$PROJECT_FILE_PATH" ] && [ -f "$PROJECT_FILE_PATH/project.pbxproj" ]; then
  PBXPROJ="$PROJECT_FILE_PATH/project.pbxproj"
elif [ -n "$SRCROOT" ]; then
  PBXPROJ="$(find "$SRCROOT" -maxdepth 4 -name project.pbxproj -path '*.xcodeproj/*' -print 2>/dev/null | head -n 1)"
fi

if [ -z "$PBXPROJ" ] || [ ! -f "$PBXPROJ" ]; then
  write_empty_manifest "project.pbxproj not found"
fi

JSON_PATH="$(mktemp "${{TMPDIR:-/tmp}}/miniapp-pbxproj.XXXXXX" 2>/dev/null)"
if [ -z "$JSON_PATH" ]; then
  write_empty_manifest "failed to create a temporary file"
fi

if ! "{converter}" -convert json -o "$JSON_PATH" "$PBXPROJ" >/dev/null 2>&1; then
  rm -f "$JSON_PATH"
  write_empty_manifest "failed to convert pbxproj to json"
fi

if ! command -v python3 >/dev/null 2>&1; then
  rm -f "$JSON_PATH"
  write_empty_manifest "python3 not found"
fi

python3 - "$OUTPUT_PATH" "$JSON_PATH" <<'{HEREDOC_DELIMITER}' || echo '[]' > "$OUTPUT_PATH"
"""
    footer = f"""\
{HEREDOC_DELIMITER}

rm -f "$JSON_PATH"
exit 0
"""
    return header + extractor_source.rstrip("\n") + "\n" + footer


def install_generator_script(
    project_dir: Path,
    config: MiniAppConfig,
    force: bool = False,
) -> Path:
    """Write the generator script next to the .xcodeproj and make it executable.

    An existing script is left alone unless ``force`` is set.

    Args:
        project_dir: Directory containing the .xcodeproj ($SRCROOT)
        config: Tool configuration
        force: Overwrite an existing script

    Returns:
        Path to the installed script

    Raises:
        MiniAppError: If the script cannot be written
    """
    script_path = Path(project_dir) / config.scripts_dir / config.script_name

    if script_path.exists() and not force:
        return script_path

    try:
        script_path.parent.mkdir(parents=True, exist_ok=True)
        script_path.write_text(render_generator_script(config), encoding="utf-8")
        mode = script_path.stat().st_mode
        os.chmod(script_path, mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    except OSError as e:
        msg = f"Failed to install generator script at {script_path}: {e}"
        raise MiniAppError(msg, details={"path": str(script_path)}) from e

    return script_path
