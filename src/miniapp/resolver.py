"""Selection of the application target that receives the build phase."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import ValidationError

from .exceptions import (
    AmbiguousTargetError,
    DocumentUnreadableError,
    NoEligibleTargetError,
    TargetNotFoundError,
)

if TYPE_CHECKING:
    from .document import ProjectDocument
    from .models import NativeTarget


def find_app_targets(document: ProjectDocument) -> list[NativeTarget]:
    """Return native targets whose product type is an application.

    Raises:
        DocumentUnreadableError: If a target record has malformed fields
    """
    try:
        targets = document.native_targets()
    except ValidationError as e:
        msg = f"Malformed PBXNativeTarget record in {document.path}: {e}"
        raise DocumentUnreadableError(msg, details={"path": str(document.path)}) from e

    return [target for target in targets if target.is_application]


def resolve_target(
    targets: list[NativeTarget],
    target_name: str | None = None,
    preferred_name: str | None = None,
) -> NativeTarget:
    """Pick one target: explicit name, then sole target, then preferred name.

    Args:
        targets: Eligible application targets
        target_name: Name passed explicitly by the user
        preferred_name: Name inferred from the project, e.g. the .xcodeproj stem

    Returns:
        Selected target

    Raises:
        NoEligibleTargetError: If there are no targets
        TargetNotFoundError: If ``target_name`` matches nothing
        AmbiguousTargetError: If several targets remain and no hint decides
    """
    available = [target.display_name for target in targets]
    listed = ", ".join(available)

    if not targets:
        msg = "No application targets found in project"
        raise NoEligibleTargetError(msg)

    if target_name is not None:
        for target in targets:
            if target.display_name == target_name:
                return target
        msg = f"Target not found: {target_name}. Available app targets: [{listed}]"
        raise TargetNotFoundError(msg, available=available)

    if len(targets) == 1:
        return targets[0]

    if preferred_name is not None:
        matches = [t for t in targets if t.display_name == preferred_name]
        if len(matches) == 1:
            return matches[0]
        msg = (
            f"Multiple app targets found; couldn't auto-select target named "
            f"'{preferred_name}'. Pass --target. Available: [{listed}]"
        )
        raise AmbiguousTargetError(msg, available=available)

    msg = f"Multiple app targets found; pass --target. Available: [{listed}]"
    raise AmbiguousTargetError(msg, available=available)
