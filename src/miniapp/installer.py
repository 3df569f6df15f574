"""Install flow: project discovery, generator script, build phase injection."""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from .config import load_config
from .converter import PlistConverter
from .exceptions import InvalidArgumentsError, ProjectFileNotFoundError
from .generator import install_generator_script
from .injector import BuildPhaseInjector
from .models import InstallOptions, InstallResult, MiniAppConfig

if TYPE_CHECKING:
    from .converter import ProjectConverter

XCODEPROJ_SUFFIX = ".xcodeproj"
PODS_PROJECT_NAME = "pods.xcodeproj"


def find_xcodeprojs(directory: Path) -> list[Path]:
    """Find .xcodeproj bundles below ``directory``, skipping hidden directories."""
    found: list[Path] = []
    for root, dirs, _files in os.walk(directory):
        dirs[:] = sorted(d for d in dirs if not d.startswith("."))
        for name in list(dirs):
            if name.endswith(XCODEPROJ_SUFFIX):
                found.append(Path(root) / name)
                dirs.remove(name)
    return found


def locate_project(project_path: Path | None, search_root: Path) -> Path:
    """Return the .xcodeproj to modify.

    Args:
        project_path: Path passed with --project, if any
        search_root: Directory searched when no path is given

    Returns:
        Path to the .xcodeproj bundle

    Raises:
        ProjectFileNotFoundError: If nothing is found
        InvalidArgumentsError: If the choice is ambiguous or not an .xcodeproj
    """
    if project_path is not None:
        xcodeproj = Path(project_path)
    else:
        found = find_xcodeprojs(search_root)
        filtered = [p for p in found if p.name.lower() != PODS_PROJECT_NAME]
        candidates = filtered or found

        if not candidates:
            msg = "No .xcodeproj found. Pass --project <path/to/App.xcodeproj>."
            raise ProjectFileNotFoundError(msg, details={"searched": str(search_root)})
        if len(candidates) > 1:
            listed = ", ".join(sorted(str(p) for p in candidates))
            msg = f"Multiple .xcodeproj found; pass --project. Candidates: [{listed}]"
            raise InvalidArgumentsError(msg)
        xcodeproj = candidates[0]

    if xcodeproj.suffix != XCODEPROJ_SUFFIX:
        msg = "--project must point to a .xcodeproj"
        raise InvalidArgumentsError(msg, details={"project": str(xcodeproj)})

    return xcodeproj


def install(
    options: InstallOptions,
    config: MiniAppConfig,
    converter: ProjectConverter | None = None,
    search_root: Path | None = None,
) -> InstallResult:
    """Install the generator script and inject its Run Script phase.

    Args:
        options: Parsed command-line options
        config: Configuration built by the entry point
        converter: project.pbxproj converter, defaults to plutil
        search_root: Where to look for a project, defaults to the working directory

    Returns:
        What was installed and how the project changed
    """
    xcodeproj = locate_project(options.project_path, search_root or Path.cwd())
    pbxproj = xcodeproj / "project.pbxproj"
    if not pbxproj.is_file():
        msg = f"project.pbxproj not found at {pbxproj}"
        raise ProjectFileNotFoundError(msg, details={"path": str(pbxproj)})

    project_dir = xcodeproj.parent
    config = load_config(project_dir, config)
    if converter is None:
        converter = PlistConverter(config.converter_path)

    script_path = install_generator_script(project_dir, config, force=options.force)

    injector = BuildPhaseInjector(config, converter)
    outcome = injector.inject(
        pbxproj,
        target_name=options.target_name,
        preferred_target_name=xcodeproj.stem,
        script_relative_path=config.script_relative_path,
        force=options.force,
        strategy=options.strategy,
    )

    return InstallResult(xcodeproj=xcodeproj, script_path=script_path, injection=outcome)
