"""
JSON extraction for MSBuild console output.

MSBuild prints a single JSON document when -getProperty, -getItem or
-getTargetResult is used, but SDK resolvers and workload checks may still
write warning lines ahead of it. These helpers locate the document and
decode it.
"""

import json
from typing import Any


class JSONParseError(Exception):
    """Raised when no JSON document can be decoded from the output."""

    def __init__(
        self,
        message: str,
        original_error: Exception | None = None,
        raw_output: str | None = None,
    ):
        super().__init__(message)
        self.original_error = original_error
        self.raw_output = raw_output


def extract_first_json_object(text: str) -> str | None:
    """Extract the first complete JSON object using bracket counting.

    Args:
        text: Text potentially containing a JSON object.

    Returns:
        Extracted JSON object string or None if not found.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escape_next = False

    for i, char in enumerate(text[start:], start):
        if escape_next:
            escape_next = False
            continue

        if char == "\\" and in_string:
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start:i + 1]

    return None


def _document_start(text: str) -> int:
    """Return the offset of the first line that opens a JSON object."""
    offset = 0
    for line in text.splitlines(keepends=True):
        if line.lstrip().startswith("{"):
            return offset + line.index("{")
        offset += len(line)
    return -1


def parse_json_document(text: str) -> dict[str, Any]:
    """Decode the JSON object printed by MSBuild.

    Tries a direct decode first, then the first line opening an object,
    then bracket counting over the whole text.

    Args:
        text: Raw stdout of an MSBuild invocation.

    Returns:
        Decoded JSON object.

    Raises:
        JSONParseError: If no JSON object can be decoded.
    """
    stripped = text.strip()
    if not stripped:
        raise JSONParseError("Empty output", raw_output=text)

    last_error: Exception | None = None
    candidates = [stripped]

    start = _document_start(stripped)
    if start > 0:
        candidates.append(stripped[start:])

    extracted = extract_first_json_object(stripped)
    if extracted:
        candidates.append(extracted)

    for candidate in candidates:
        try:
            result = json.loads(candidate)
        except json.JSONDecodeError as e:
            last_error = e
            continue
        if isinstance(result, dict):
            return result
        last_error = ValueError(f"Expected a JSON object, got {type(result).__name__}")

    raise JSONParseError(
        f"Failed to decode JSON output: {last_error}",
        original_error=last_error,
        raw_output=text,
    )
