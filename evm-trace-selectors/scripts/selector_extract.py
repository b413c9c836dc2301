"""Selector discovery and validation over raw trace text."""

from __future__ import annotations

import re

SELECTOR_RE = re.compile(r"^0x[0-9a-fA-F]{8}$")
# A trailing hex digit means we are inside a longer hex run (address, hash).
# There is no left boundary: `ff0x12345678` still yields `0x12345678`.
TRACE_SELECTOR_RE = re.compile(r"0x[0-9a-fA-F]{8}(?![0-9a-fA-F])")
# Transaction hashes and event topics.
HEX32_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")


def is_valid_selector(value: object) -> bool:
    return isinstance(value, str) and SELECTOR_RE.fullmatch(value) is not None


def validate_selector(value: object) -> tuple[bool, str]:
    if not isinstance(value, str) or not value.strip():
        return False, "selector must be a non-empty string"
    if not is_valid_selector(value):
        return False, "Invalid selector format. Must be 0x followed by 8 hex characters."
    return True, ""


def extract_selectors(text: str) -> list[str]:
    """Return unique selectors found in ``text`` in first-occurrence order.

    Case is preserved exactly as found, so ``0xABCDABCD`` and ``0xabcdabcd``
    are distinct entries.
    """
    seen: dict[str, None] = {}
    for match in TRACE_SELECTOR_RE.finditer(text):
        seen.setdefault(match.group(0), None)
    return list(seen)


def selector_pattern(selector: str) -> re.Pattern[str]:
    return re.compile(re.escape(selector) + r"(?![0-9a-fA-F])")
