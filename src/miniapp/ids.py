"""Object identifiers for new project.pbxproj records."""

from __future__ import annotations

import secrets
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Container

OBJECT_ID_BYTES = 12


def generate_object_id(existing: Container[str] | None = None) -> str:
    """Generate a 24-character upper-case hex identifier.

    96 random bits make collisions practically impossible; when the caller
    passes the identifiers already in the document, a colliding draw is
    simply repeated.

    Args:
        existing: Identifiers already used by the document

    Returns:
        New object identifier
    """
    while True:
        object_id = secrets.token_hex(OBJECT_ID_BYTES).upper()
        if existing is None or object_id not in existing:
            return object_id
