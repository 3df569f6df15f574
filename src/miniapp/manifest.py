"""Swift package dependency manifest extraction.

Pure Python stdlib implementation - no external dependencies.
The generated build script embeds this file verbatim and runs it with the
build machine's python3, so it must never import anything outside the
standard library and must never fail the build.

Usage inside the script:
    python3 - OUTPUT_PATH PBXPROJ_JSON_PATH
"""

from __future__ import annotations

import json
import re
import sys

PACKAGE_REFERENCE_ISA = "XCRemoteSwiftPackageReference"
PRODUCT_DEPENDENCY_ISA = "XCSwiftPackageProductDependency"

# Last URL path segment, without a trailing ".git"
_URL_NAME = re.compile(r"/([^/]+?)(?:\.git)?/?$")


def requirement_version(requirement: dict) -> str:
    """Project a package requirement onto a single version string."""
    kind = requirement.get("kind") or ""
    if kind in ("upToNextMajorVersion", "upToNextMinorVersion"):
        return requirement.get("minimumVersion") or ""
    if kind == "exactVersion":
        return requirement.get("version") or ""
    if kind == "revision":
        return requirement.get("revision") or ""
    if kind == "branch":
        return requirement.get("branch") or ""
    if kind == "versionRange":
        minimum = requirement.get("minimumVersion") or ""
        maximum = requirement.get("maximumVersion") or ""
        return f"{minimum}..{maximum}" if (minimum or maximum) else ""
    return ""


def collect_packages(objects: dict) -> dict[str, dict[str, str]]:
    """Map package reference ids to their url, requirement kind and version."""
    packages = {}
    for object_id, record in objects.items():
        if not isinstance(record, dict) or record.get("isa") != PACKAGE_REFERENCE_ISA:
            continue
        requirement = record.get("requirement")
        if not isinstance(requirement, dict):
            requirement = {}
        packages[object_id] = {
            "url": record.get("repositoryURL") or "",
            "type": requirement.get("kind") or "",
            "version": requirement_version(requirement),
        }
    return packages


def product_name(declared: str | None, url: str) -> str:
    """Declared product name, else a name derived from the package URL."""
    if declared:
        return declared
    if not url:
        return ""
    match = _URL_NAME.search(url)
    return match.group(1) if match else url


def extract_manifest(data: object) -> list[dict[str, str]]:
    """Build the sorted, deduplicated dependency list from a project graph.

    Args:
        data: Decoded JSON of project.pbxproj

    Returns:
        Records with name, url, type and version, sorted by (name, url)
    """
    if not isinstance(data, dict):
        return []
    objects = data.get("objects") or {}
    if not isinstance(objects, dict):
        return []

    packages = collect_packages(objects)

    records = []
    seen = set()
    for record in objects.values():
        if not isinstance(record, dict) or record.get("isa") != PRODUCT_DEPENDENCY_ISA:
            continue
        package_id = record.get("package")
        if not isinstance(package_id, str) or package_id not in packages:
            continue
        package = packages[package_id]

        key = (package["url"], package["type"], package["version"])
        if key in seen:
            continue
        seen.add(key)

        records.append({
            "name": product_name(record.get("productName"), package["url"]),
            "url": package["url"],
            "type": package["type"],
            "version": package["version"],
        })

    records.sort(key=lambda r: (r.get("name") or "", r.get("url") or ""))
    return records


def render_manifest(records: list[dict[str, str]]) -> str:
    """Serialize records as a compact JSON array."""
    return json.dumps(records, ensure_ascii=False, separators=(",", ":"))


def write_manifest(output_path: str, records: list[dict[str, str]]) -> None:
    with open(output_path, "w", encoding="utf-8") as f:
        f.write(render_manifest(records))


def main(argv: list[str]) -> int:
    """Write the manifest for a converted project; always returns 0."""
    if not argv:
        return 0
    output_path = argv[0]

    try:
        with open(argv[1], encoding="utf-8") as f:
            records = extract_manifest(json.load(f))
    except Exception as e:
        print(f"[SDM] WARN: failed to read project json ({e}); writing empty manifest", file=sys.stderr)
        records = []

    try:
        write_manifest(output_path, records)
    except OSError as e:
        print(f"[SDM] WARN: failed to write {output_path}: {e}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
