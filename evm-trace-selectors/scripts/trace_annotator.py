"""Inline selector annotation for trace text."""

from __future__ import annotations

from typing import Mapping

from selector_extract import TRACE_SELECTOR_RE, selector_pattern


def annotate_selector(text: str, selector: str, annotation: str) -> str:
    """Replace every bounded occurrence of ``selector`` with ``selector [annotation]``.

    Not idempotent: the character after the selector stays a space, so a second
    pass appends another annotation. Apply once per trace.
    """
    replacement = f"{selector} [{annotation}]"
    return selector_pattern(selector).sub(lambda _m: replacement, text)


def annotate_trace(text: str, annotations: Mapping[str, str | None]) -> str:
    """Annotate every mapped selector in a single scan of ``text``.

    Selectors inside inserted annotations (fuzzy labels carry one) are never
    rescanned. Unmapped or unresolved selectors are left as they are.
    """

    def _replace(match):
        selector = match.group(0)
        annotation = annotations.get(selector)
        if not annotation:
            return selector
        return f"{selector} [{annotation}]"

    return TRACE_SELECTOR_RE.sub(_replace, text)
