"""Display ranking for resolved selector candidates."""

from __future__ import annotations

from signature_resolver import ResolutionEntry

INLINE_LIMIT = 3
REPORT_REMOTE_LIMIT = 5
INLINE_JOINER = " or "


def inline_candidates(entry: ResolutionEntry) -> list[str]:
    if entry.local:
        return entry.local[:INLINE_LIMIT]
    # Shorter declarations tend to be the common interface among collisions.
    return sorted(entry.remote, key=len)[:INLINE_LIMIT]


def inline_annotation(entry: ResolutionEntry) -> str | None:
    candidates = inline_candidates(entry)
    if not candidates:
        return None
    return "Likely: " + INLINE_JOINER.join(candidates)


def report_remote(entry: ResolutionEntry) -> tuple[list[str], int]:
    shown = entry.remote[:REPORT_REMOTE_LIMIT]
    return shown, len(entry.remote) - len(shown)


def best_match(entry: ResolutionEntry) -> str | None:
    if entry.local:
        return entry.local[0]
    if entry.remote:
        return entry.remote[0]
    return None
