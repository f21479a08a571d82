"""
Core utilities module for fscprobe.
"""

from fscprobe.core.utils.json_parser import (
    JSONParseError,
    extract_first_json_object,
    parse_json_document,
)

__all__ = [
    "JSONParseError",
    "extract_first_json_object",
    "parse_json_document",
]
