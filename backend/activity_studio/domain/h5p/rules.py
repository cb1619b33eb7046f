"""Business rules for H5P content: library strings, parameter blobs and titles."""
from __future__ import annotations
import json
import re
from typing import Any, Dict, Tuple

from activity_studio.domain.common import errors
from activity_studio.domain.common.result import Result
from activity_studio.domain.h5p.models import LibraryReference, TITLE_MAX_LENGTH

# "<machineName> <major>.<minor>", e.g. "H5P.MultiChoice 1.16"
_LIBRARY_STRING = re.compile(r"^([\w\-.]{1,255}) ([0-9]{1,5})\.([0-9]{1,5})$")


def parse_library_string(value: Any) -> Result[LibraryReference]:
    """Parse a library string into an unresolved LibraryReference."""
    if not isinstance(value, str):
        return Result.fail("Invalid library.", errors.MALFORMED_LIBRARY_STRING)
    match = _LIBRARY_STRING.match(value)
    if not match:
        return Result.fail(f"Invalid library '{value}'.", errors.MALFORMED_LIBRARY_STRING)
    return Result.ok(LibraryReference(match.group(1), int(match.group(2)), int(match.group(3))))


def library_to_string(library: LibraryReference) -> str:
    return f"{library.machine_name} {library.major_version}.{library.minor_version}"


def parse_parameters(raw: Any) -> Result[Tuple[Any, Dict[str, Any]]]:
    """
    Parse the editor payload {"params": ..., "metadata": {...}}.
    Accepts the JSON text or an already decoded mapping.
    Returns Result.ok((params, metadata)) with params normalised through a JSON round-trip.
    """
    if isinstance(raw, (str, bytes)):
        try:
            parsed = json.loads(raw)
        except ValueError:
            return Result.fail("Invalid parameters", errors.INVALID_PARAMETERS)
    else:
        parsed = raw

    if not isinstance(parsed, dict) or ("params" not in parsed and "metadata" not in parsed):
        return Result.fail("Invalid parameters", errors.INVALID_PARAMETERS)

    metadata = parsed.get("metadata")
    if metadata is None:
        metadata = {}
    if not isinstance(metadata, dict):
        return Result.fail("Invalid parameters: metadata must be an object.", errors.INVALID_PARAMETERS)

    try:
        params = json.loads(json.dumps(parsed.get("params", {})))
    except (TypeError, ValueError):
        return Result.fail("Invalid parameters", errors.INVALID_PARAMETERS)
    return Result.ok((params, dict(metadata)))


def validate_title(metadata: Dict[str, Any]) -> Result[str]:
    """Trim metadata.title and check it is non-empty and at most 255 characters."""
    title = metadata.get("title")
    trimmed = title.strip() if isinstance(title, str) else ""
    if not trimmed:
        return Result.fail("Missing title", errors.MISSING_TITLE)
    if len(trimmed) > TITLE_MAX_LENGTH:
        return Result.fail(
            f"Title is too long. Must be {TITLE_MAX_LENGTH} letters or shorter.",
            errors.TITLE_TOO_LONG,
        )
    return Result.ok(trimmed)


def canonical_params(params: Any) -> str:
    return json.dumps(params, sort_keys=True, separators=(",", ":"))


def params_differ(old: Any, new: Any) -> bool:
    """Structural comparison; key order and whitespace do not count as a change."""
    return canonical_params(old) != canonical_params(new)
