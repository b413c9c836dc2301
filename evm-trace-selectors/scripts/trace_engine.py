"""Trace request normalisation and the selector annotation pipelines."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from cast_adapter import CommandRunner, run_command, run_trace_argv
from error_map import (
    ERR_INVALID_REQUEST,
    ERR_INVALID_SELECTOR,
    ERR_SIGNATURE_FILE_EMPTY,
    ERR_SIGNATURE_FILE_NOT_FOUND,
    ERR_TRACE_FAILED,
)
from match_ranker import best_match, inline_annotation
from report_builder import (
    build_analysis_report,
    build_lookup_report,
    simplified_trace,
    summarize_resolutions,
)
from rpc_endpoints import resolve_rpc_url
from selector_extract import HEX32_RE, extract_selectors, validate_selector
from signature_resolver import (
    LocalSignatureIndex,
    ResolutionEntry,
    load_signature_file,
    lookup_remote,
    resolve_selectors,
)
from trace_annotator import annotate_trace
from trace_contract import (
    ANALYSIS_TRACE_VERBOSITY,
    DEFAULT_TRACE_VERBOSITY,
    OUTPUT_FORMATS,
    optional_path,
    string_list,
)

ANNOTATION_STYLES = {"likely", "best"}


def _error(code: str, message: str, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": False,
        "status": "error",
        "error_code": code,
        "error_message": message,
    }
    payload.update(extra)
    return payload


def _ok(**fields: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "ok": True,
        "status": "ok",
        "error_code": None,
        "error_message": None,
    }
    payload.update(fields)
    return payload


def _common_fields(request: dict[str, Any]) -> tuple[bool, dict[str, Any], str]:
    ok, signature_file = optional_path(request.get("signature_file"))
    if not ok:
        return False, {}, "request.signature_file must be a string path"
    fuzzy = request.get("fuzzy", False)
    if not isinstance(fuzzy, bool):
        return False, {}, "request.fuzzy must be a boolean"
    rpc_url = request.get("rpc_url")
    if rpc_url is not None and not isinstance(rpc_url, str):
        return False, {}, "request.rpc_url must be a string"
    return True, {"signature_file": signature_file, "fuzzy": fuzzy, "rpc_url": rpc_url}, ""


def _tx_hash(request: dict[str, Any]) -> str | None:
    tx_hash = request.get("tx_hash")
    if not isinstance(tx_hash, str) or not HEX32_RE.fullmatch(tx_hash):
        return None
    return tx_hash


def normalize_trace_request(request: dict[str, Any]) -> tuple[bool, dict[str, Any], str]:
    if not isinstance(request, dict):
        return False, {}, "trace request must be an object"
    tx_hash = _tx_hash(request)
    if tx_hash is None:
        return False, {}, "trace request.tx_hash must be 0x-prefixed 32-byte hash"

    ok, common, message = _common_fields(request)
    if not ok:
        return False, {}, message

    verbosity = request.get("verbosity", DEFAULT_TRACE_VERBOSITY)
    if isinstance(verbosity, bool) or not isinstance(verbosity, int):
        return False, {}, "trace request.verbosity must be an integer"

    labels = string_list(request.get("labels"))
    if labels is None:
        return False, {}, "trace request.labels must be a string array"

    output_format = str(request.get("output_format", "text")).strip().lower()
    if output_format not in OUTPUT_FORMATS:
        return False, {}, "trace request.output_format must be 'text' or 'json'"

    match_signatures = request.get("match_signatures", True)
    if not isinstance(match_signatures, bool):
        return False, {}, "trace request.match_signatures must be a boolean"

    return (
        True,
        {
            **common,
            "tx_hash": tx_hash,
            "verbosity": verbosity,
            "labels": labels,
            "output_format": output_format,
            "match_signatures": match_signatures,
        },
        "",
    )


def normalize_analysis_request(request: dict[str, Any]) -> tuple[bool, dict[str, Any], str]:
    if not isinstance(request, dict):
        return False, {}, "analysis request must be an object"
    tx_hash = _tx_hash(request)
    if tx_hash is None:
        return False, {}, "analysis request.tx_hash must be 0x-prefixed 32-byte hash"

    ok, common, message = _common_fields(request)
    if not ok:
        return False, {}, message

    known_addresses = string_list(request.get("known_addresses"))
    if known_addresses is None:
        return False, {}, "analysis request.known_addresses must be a string array"

    return True, {**common, "tx_hash": tx_hash, "known_addresses": known_addresses}, ""


def normalize_annotate_request(request: dict[str, Any]) -> tuple[bool, dict[str, Any], str]:
    if not isinstance(request, dict):
        return False, {}, "annotate request must be an object"
    trace = request.get("trace")
    if not isinstance(trace, str):
        return False, {}, "annotate request.trace must be a string"

    ok, common, message = _common_fields(request)
    if not ok:
        return False, {}, message

    style = str(request.get("style", "likely")).strip().lower()
    if style not in ANNOTATION_STYLES:
        return False, {}, "annotate request.style must be 'likely' or 'best'"
    return True, {**common, "trace": trace, "style": style}, ""


def normalize_lookup_request(request: dict[str, Any]) -> tuple[bool, dict[str, Any], str]:
    if not isinstance(request, dict):
        return False, {}, "lookup request must be an object"
    valid, message = validate_selector(request.get("selector"))
    if not valid:
        return False, {"error_code": ERR_INVALID_SELECTOR}, message

    ok, common, message = _common_fields(request)
    if not ok:
        return False, {}, message
    if common["signature_file"] is None:
        return False, {}, "lookup request.signature_file is required"
    return True, {**common, "selector": request["selector"]}, ""


async def annotate_trace_text(
    trace: str,
    *,
    cast_binary: str,
    runner: CommandRunner = run_command,
    style: str = "likely",
    signature_file: Path | None = None,
    fuzzy: bool = False,
    rpc_url: str | None = None,
) -> dict[str, Any]:
    """Extract, resolve and annotate; returns the pieces every entry point reports."""
    selectors = extract_selectors(trace)
    if not selectors:
        return {"selectors": [], "resolutions": {}, "annotated": trace}

    resolutions = await resolve_selectors(
        selectors,
        cast_binary=cast_binary,
        runner=runner,
        signature_file=signature_file,
        fuzzy=fuzzy,
        rpc_url=rpc_url,
    )
    pick = inline_annotation if style == "likely" else best_match
    annotations = {selector: pick(resolutions[selector]) for selector in selectors}
    return {
        "selectors": selectors,
        "resolutions": resolutions,
        "annotated": annotate_trace(trace, annotations),
    }


async def _fetch_trace(argv: list[str], runner: CommandRunner) -> tuple[bool, str]:
    result = await runner(argv)
    return result.success, result.output


async def run_trace(
    *,
    normalized_request: dict[str, Any],
    cast_binary: str,
    runner: CommandRunner = run_command,
) -> tuple[int, dict[str, Any]]:
    tx_hash = normalized_request["tx_hash"]
    rpc_url = resolve_rpc_url(normalized_request.get("rpc_url"))
    argv = run_trace_argv(
        cast_binary,
        tx_hash,
        rpc_url=rpc_url,
        verbosity=normalized_request["verbosity"],
        labels=normalized_request["labels"],
        json_output=normalized_request["output_format"] == "json",
    )
    ok, trace = await _fetch_trace(argv, runner)
    if not ok:
        return 1, _error(ERR_TRACE_FAILED, f"Failed to trace transaction: {trace}", argv=argv)

    selectors: list[str] = []
    resolutions: dict[str, ResolutionEntry] = {}
    output = trace
    if normalized_request["match_signatures"]:
        annotated = await annotate_trace_text(
            trace,
            cast_binary=cast_binary,
            runner=runner,
            style="likely",
            signature_file=normalized_request["signature_file"],
            fuzzy=normalized_request["fuzzy"],
            rpc_url=rpc_url,
        )
        selectors = annotated["selectors"]
        resolutions = annotated["resolutions"]
        output = annotated["annotated"]

    return 0, _ok(
        tx_hash=tx_hash,
        rpc_url=rpc_url,
        argv=argv,
        selector_count=len(selectors),
        selectors=summarize_resolutions(selectors, resolutions),
        report=f"Transaction trace for {tx_hash}:\n\n{output}",
        trace=output,
    )


async def run_analysis(
    *,
    normalized_request: dict[str, Any],
    cast_binary: str,
    runner: CommandRunner = run_command,
) -> tuple[int, dict[str, Any]]:
    tx_hash = normalized_request["tx_hash"]
    rpc_url = resolve_rpc_url(normalized_request.get("rpc_url"))
    argv = run_trace_argv(
        cast_binary,
        tx_hash,
        rpc_url=rpc_url,
        verbosity=ANALYSIS_TRACE_VERBOSITY,
        labels=normalized_request["known_addresses"],
    )
    ok, trace = await _fetch_trace(argv, runner)
    if not ok:
        return 1, _error(ERR_TRACE_FAILED, f"Failed to trace transaction: {trace}", argv=argv)

    selectors = extract_selectors(trace)
    resolutions: dict[str, ResolutionEntry] = {}
    if selectors:
        resolutions = await resolve_selectors(
            selectors,
            cast_binary=cast_binary,
            runner=runner,
            signature_file=normalized_request["signature_file"],
            fuzzy=normalized_request["fuzzy"],
        )

    return 0, _ok(
        tx_hash=tx_hash,
        rpc_url=rpc_url,
        argv=argv,
        selector_count=len(selectors),
        selectors=summarize_resolutions(selectors, resolutions),
        report=build_analysis_report(tx_hash, trace, selectors, resolutions),
        trace=simplified_trace(trace, selectors, resolutions),
    )


async def run_annotate(
    *,
    normalized_request: dict[str, Any],
    cast_binary: str,
    runner: CommandRunner = run_command,
) -> tuple[int, dict[str, Any]]:
    rpc_url = normalized_request.get("rpc_url")
    annotated = await annotate_trace_text(
        normalized_request["trace"],
        cast_binary=cast_binary,
        runner=runner,
        style=normalized_request["style"],
        signature_file=normalized_request["signature_file"],
        fuzzy=normalized_request["fuzzy"],
        rpc_url=resolve_rpc_url(rpc_url) if rpc_url else None,
    )
    selectors = annotated["selectors"]
    return 0, _ok(
        selector_count=len(selectors),
        selectors=summarize_resolutions(selectors, annotated["resolutions"]),
        trace=annotated["annotated"],
    )


async def run_file_lookup(
    *,
    normalized_request: dict[str, Any],
    cast_binary: str,
    runner: CommandRunner = run_command,
) -> tuple[int, dict[str, Any]]:
    selector = normalized_request["selector"]
    signature_file: Path = normalized_request["signature_file"]

    try:
        signatures = await load_signature_file(signature_file)
    except FileNotFoundError:
        return 1, _error(ERR_SIGNATURE_FILE_NOT_FOUND, f"Signatures file not found: {signature_file}")
    except (OSError, UnicodeDecodeError) as err:
        return 1, _error(ERR_INVALID_REQUEST, f"Error reading signatures file: {err}")
    if not signatures:
        return 1, _error(ERR_SIGNATURE_FILE_EMPTY, "No signatures found in the provided file.")

    entry = ResolutionEntry(selector=selector)
    rpc_url = normalized_request.get("rpc_url")
    entry.remote = await lookup_remote(
        selector,
        cast_binary=cast_binary,
        runner=runner,
        rpc_url=resolve_rpc_url(rpc_url) if rpc_url else None,
    )
    index = LocalSignatureIndex(signatures, cast_binary=cast_binary, runner=runner)
    entry.local = await index.match(selector, fuzzy=normalized_request["fuzzy"])

    return 0, _ok(
        selector=selector,
        local=entry.local,
        remote=entry.remote,
        best_match=best_match(entry),
        report=build_lookup_report(entry),
    )
