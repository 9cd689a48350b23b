"""Shared helper functions for CLI commands."""

import argparse
import json
from typing import Any, Tuple

from quint.mcp.sanitize import sanitize_string


def validate_input(value: str, field_name: str, max_length: int = 1000) -> str:
    """Validate and sanitize CLI inputs."""
    return sanitize_string(value, field_name, max_length, required=False)


def print_json(data: Any) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=2, default=str))


def parse_param(value: str) -> Tuple[str, str]:
    """Parse a ``key=value`` tool argument."""
    key, sep, val = value.partition("=")
    key = key.strip()
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"Expected key=value, got '{value}'")
    return key, val
