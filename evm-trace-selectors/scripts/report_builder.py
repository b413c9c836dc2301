"""Human-readable and structured reports over selector resolutions."""

from __future__ import annotations

from typing import Any

from match_ranker import best_match, inline_annotation, report_remote
from signature_resolver import ResolutionEntry, SignatureSource
from trace_annotator import annotate_trace


def render_selector_block(entry: ResolutionEntry) -> list[str]:
    lines = [f"Selector: {entry.selector}"]

    if entry.local:
        lines.append(f"  Local matches ({len(entry.local)}):")
        lines.extend(f"    - {sig}" for sig in entry.local)

    if entry.remote:
        shown, overflow = report_remote(entry)
        lines.append(f"  Online matches ({len(entry.remote)}):")
        lines.extend(f"    - {sig}" for sig in shown)
        if overflow > 0:
            lines.append(f"    - ... and {overflow} more")

    if not entry.has_matches:
        lines.append("  No matches found")
    return lines


def simplified_trace(trace: str, selectors: list[str], resolutions: dict[str, ResolutionEntry]) -> str:
    best = {selector: best_match(resolutions[selector]) for selector in selectors if selector in resolutions}
    return annotate_trace(trace, best)


def build_analysis_report(
    tx_hash: str,
    trace: str,
    selectors: list[str],
    resolutions: dict[str, ResolutionEntry],
) -> str:
    out = [f"Analysis of transaction {tx_hash}:", ""]
    out.append(f"Found {len(selectors)} unique function selectors in the trace.")
    if not selectors:
        out.append("No function selectors found in the transaction trace.")
        return "\n".join(out)
    out.append("")
    for selector in selectors:
        entry = resolutions.get(selector) or ResolutionEntry(selector=selector)
        out.extend(render_selector_block(entry))
        out.append("")
    out.append("Simplified trace with function names:")
    out.append("")
    out.append(simplified_trace(trace, selectors, resolutions))
    return "\n".join(out)


def build_lookup_report(entry: ResolutionEntry) -> str:
    out = [f"Results for selector {entry.selector}:", ""]
    if entry.local:
        out.append("Matching signatures from local file:")
        out.extend(entry.local)
    else:
        out.append("No matching signatures found in local file.")
    out.append("")
    if entry.remote:
        out.append("Possible signatures from 4byte directory:")
        out.extend(entry.remote)
    else:
        out.append("No signatures found in 4byte directory.")
    return "\n".join(out)


def summarize_resolutions(
    selectors: list[str],
    resolutions: dict[str, ResolutionEntry],
) -> list[dict[str, Any]]:
    summary: list[dict[str, Any]] = []
    for selector in selectors:
        entry = resolutions.get(selector) or ResolutionEntry(selector=selector)
        row: dict[str, Any] = {"selector": selector}
        for source in SignatureSource:
            row[source.value] = list(entry.signatures(source))
        row["best_match"] = best_match(entry)
        row["inline"] = inline_annotation(entry)
        summary.append(row)
    return summary
