#!/usr/bin/env python3
"""Agent-facing JSON wrapper for selector resolution over cast traces."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Awaitable, Callable

# Local imports for script execution (python3 scripts/evm_trace.py ...)
SCRIPT_DIR = Path(__file__).resolve().parent
if str(SCRIPT_DIR) not in sys.path:
    sys.path.insert(0, str(SCRIPT_DIR))

from anvil_status import query_anvil_status  # noqa: E402
from cast_adapter import (  # noqa: E402
    cast_event_topic0,
    cast_function_selector,
    default_cast_binary,
    four_byte_event_argv,
    is_cast_installed,
    run_command,
)
from error_map import (  # noqa: E402
    ERR_CAST_NOT_INSTALLED,
    ERR_EXEC_TIMEOUT,
    ERR_INTERNAL,
    ERR_INVALID_REQUEST,
    ERR_INVALID_SELECTOR,
    ERR_LOOKUP_FAILED,
)
from selector_extract import HEX32_RE, validate_selector  # noqa: E402
from signature_resolver import lookup_remote  # noqa: E402
from trace_contract import DEFAULT_TRACE_VERBOSITY, parse_request_from_args  # noqa: E402
from trace_engine import (  # noqa: E402
    normalize_analysis_request,
    normalize_annotate_request,
    normalize_lookup_request,
    normalize_trace_request,
    run_analysis,
    run_annotate,
    run_file_lookup,
    run_trace,
)
from workspace_files import list_directory, workspace_root  # noqa: E402

LOGGER = logging.getLogger("evm_trace")

FOUNDRY_NOT_INSTALLED_MESSAGE = (
    "Foundry tools are not installed. Please install Foundry: "
    "https://book.getfoundry.sh/getting-started/installation"
)

Normalizer = Callable[[dict[str, Any]], tuple[bool, dict[str, Any], str]]
Pipeline = Callable[..., Awaitable[tuple[int, dict[str, Any]]]]

PIPELINES: dict[str, tuple[Normalizer, Pipeline]] = {
    "trace": (normalize_trace_request, run_trace),
    "analyze": (normalize_analysis_request, run_analysis),
    "annotate": (normalize_annotate_request, run_annotate),
    "lookup-file": (normalize_lookup_request, run_file_lookup),
}


def _json_dump(payload: Any, pretty: bool = True) -> str:
    return json.dumps(payload, indent=2 if pretty else None, sort_keys=False)


def _timestamp() -> str:
    return datetime.now(UTC).isoformat()


def _base_response(command: str) -> dict[str, Any]:
    return {
        "timestamp_utc": _timestamp(),
        "command": command,
        "status": "error",
        "ok": False,
        "error_code": ERR_INTERNAL,
        "error_message": "unset",
    }


def _emit(command: str, body: dict[str, Any], args: argparse.Namespace, exit_code: int) -> int:
    payload = _base_response(command)
    payload.update(body)
    print(_json_dump(payload, pretty=not args.compact))
    return exit_code


def _emit_error(
    command: str,
    args: argparse.Namespace,
    *,
    code: str,
    message: str,
    exit_code: int,
    **extra: Any,
) -> int:
    body: dict[str, Any] = {"status": "error", "ok": False, "error_code": code, "error_message": message}
    body.update(extra)
    return _emit(command, body, args, exit_code)


def _run_async(coro: Awaitable[Any], timeout_seconds: float | None) -> Any:
    if timeout_seconds is None:
        return asyncio.run(coro)
    return asyncio.run(asyncio.wait_for(coro, timeout=timeout_seconds))


def _timeout_error(command: str, args: argparse.Namespace, **extra: Any) -> int:
    return _emit_error(
        command,
        args,
        code=ERR_EXEC_TIMEOUT,
        message=f"{command} did not finish within {args.timeout_seconds}s",
        exit_code=1,
        **extra,
    )


def _require_cast(command: str, args: argparse.Namespace) -> int | None:
    if is_cast_installed(args.cast_binary):
        return None
    return _emit_error(
        command,
        args,
        code=ERR_CAST_NOT_INSTALLED,
        message=FOUNDRY_NOT_INSTALLED_MESSAGE,
        exit_code=1,
        cast_binary=args.cast_binary,
    )


def cmd_pipeline(args: argparse.Namespace) -> int:
    command = args.command
    normalize, pipeline = PIPELINES[command]
    try:
        req = parse_request_from_args(args)
    except (OSError, ValueError) as err:
        return _emit_error(command, args, code=ERR_INVALID_REQUEST, message=str(err), exit_code=2)

    ok, normalized, message = normalize(req)
    if not ok:
        code = normalized.get("error_code", ERR_INVALID_REQUEST)
        return _emit_error(command, args, code=code, message=message, exit_code=2, request=req)

    missing = _require_cast(command, args)
    if missing is not None:
        return missing

    start = time.perf_counter()
    try:
        exit_code, body = _run_async(
            pipeline(normalized_request=normalized, cast_binary=args.cast_binary, runner=run_command),
            args.timeout_seconds,
        )
    except TimeoutError:
        elapsed = int((time.perf_counter() - start) * 1000)
        return _timeout_error(command, args, duration_ms=elapsed)
    body["duration_ms"] = int((time.perf_counter() - start) * 1000)
    LOGGER.debug("%s finished with exit code %d in %dms", command, exit_code, body["duration_ms"])
    if args.text and body.get("ok") and "report" in body:
        print(body["report"])
        return exit_code
    return _emit(command, body, args, exit_code)


async def _four_byte(args: argparse.Namespace) -> tuple[int, dict[str, Any]]:
    if args.event:
        result = await run_command(four_byte_event_argv(args.cast_binary, args.selector))
        if not result.success:
            return 1, {
                "status": "error",
                "ok": False,
                "error_code": ERR_LOOKUP_FAILED,
                "error_message": f"Lookup failed: {result.output.strip()}",
            }
        signatures = [line.strip() for line in result.output.strip().split("\n") if line.strip()]
    else:
        signatures = await lookup_remote(args.selector, cast_binary=args.cast_binary)
    return 0, {
        "status": "ok",
        "ok": True,
        "error_code": None,
        "error_message": None,
        "selector": args.selector,
        "kind": "event" if args.event else "function",
        "signatures": signatures,
    }


def cmd_four_byte(args: argparse.Namespace) -> int:
    if args.event:
        valid = HEX32_RE.fullmatch(args.selector) is not None
        message = "event topic must be 0x followed by 64 hex characters"
    else:
        valid, message = validate_selector(args.selector)
    if not valid:
        return _emit_error("4byte", args, code=ERR_INVALID_SELECTOR, message=message, exit_code=2)

    missing = _require_cast("4byte", args)
    if missing is not None:
        return missing
    try:
        exit_code, body = _run_async(_four_byte(args), args.timeout_seconds)
    except TimeoutError:
        return _timeout_error("4byte", args)
    return _emit("4byte", body, args, exit_code)


def cmd_sig(args: argparse.Namespace) -> int:
    if "(" not in args.signature:
        return _emit_error(
            "sig",
            args,
            code=ERR_INVALID_REQUEST,
            message="signature must look like name(type1,type2,...)",
            exit_code=2,
        )
    missing = _require_cast("sig", args)
    if missing is not None:
        return missing

    compute = cast_event_topic0 if args.event else cast_function_selector
    try:
        value = _run_async(compute(args.signature, cast_binary=args.cast_binary), args.timeout_seconds)
    except TimeoutError:
        return _timeout_error("sig", args)
    except ValueError as err:
        return _emit_error(
            "sig",
            args,
            code=ERR_LOOKUP_FAILED,
            message=f"Selector generation failed: {err}",
            exit_code=1,
        )
    return _emit(
        "sig",
        {
            "status": "ok",
            "ok": True,
            "error_code": None,
            "error_message": None,
            "signature": args.signature,
            "kind": "event" if args.event else "function",
            "selector": value,
        },
        args,
        0,
    )


def cmd_anvil_status(args: argparse.Namespace) -> int:
    status = query_anvil_status()
    body = {"status": "ok", "ok": True, "error_code": None, "error_message": None, "anvil": status}
    return _emit("anvil-status", body, args, 0)


def cmd_list_files(args: argparse.Namespace) -> int:
    base = Path(args.root).expanduser() if args.root else workspace_root()
    target = base / args.directory if args.directory else base
    try:
        files = list_directory(target)
    except FileNotFoundError:
        return _emit_error(
            "list-files",
            args,
            code=ERR_INVALID_REQUEST,
            message=f"Directory '{args.directory or target}' does not exist",
            exit_code=1,
        )
    body = {
        "status": "ok",
        "ok": True,
        "error_code": None,
        "error_message": None,
        "directory": str(target),
        "files": files,
        "count": len(files),
    }
    return _emit("list-files", body, args, 0)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--cast-binary", default=default_cast_binary(), help="cast binary path/name")
    parser.add_argument("--timeout-seconds", type=float, default=None, help="overall deadline")
    parser.add_argument("--compact", action="store_true", help="compact JSON output")


def _add_request_inputs(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--request-file", help="request JSON file")
    parser.add_argument("--request-json", help="request JSON string")
    parser.add_argument("--text", action="store_true", help="print only the text report on success")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    trace_parser = sub.add_parser("trace", help="Trace a transaction and annotate unknown selectors")
    _add_common(trace_parser)
    _add_request_inputs(trace_parser)
    trace_parser.add_argument("--tx-hash", help="transaction hash to trace")
    trace_parser.add_argument("--rpc-url", help="JSON-RPC URL or foundry rpc_endpoints alias")
    trace_parser.add_argument("--verbosity", type=int, default=DEFAULT_TRACE_VERBOSITY)
    trace_parser.add_argument("--label", action="append", help="<address>:<label>, repeatable")
    trace_parser.add_argument(
        "--no-match-signatures",
        dest="match_signatures",
        action="store_false",
        help="skip 4byte resolution",
    )
    trace_parser.add_argument("--output-format", choices=["text", "json"], default="text")
    trace_parser.add_argument("--signature-file", help="optional local signature file")
    trace_parser.add_argument("--fuzzy", action="store_true", help="admit 2-byte prefix matches")
    trace_parser.set_defaults(func=cmd_pipeline)

    analyze_parser = sub.add_parser("analyze", help="Analyze a transaction trace and report every selector")
    _add_common(analyze_parser)
    _add_request_inputs(analyze_parser)
    analyze_parser.add_argument("--tx-hash", help="transaction hash to analyze")
    analyze_parser.add_argument("--rpc-url", help="JSON-RPC URL or foundry rpc_endpoints alias")
    analyze_parser.add_argument("--signature-file", help="optional local signature file")
    analyze_parser.add_argument("--known-address", action="append", help="<address>:<name>, repeatable")
    analyze_parser.add_argument("--fuzzy", action="store_true", help="admit 2-byte prefix matches")
    analyze_parser.set_defaults(func=cmd_pipeline)

    annotate_parser = sub.add_parser("annotate", help="Annotate selectors in an existing trace text")
    _add_common(annotate_parser)
    _add_request_inputs(annotate_parser)
    annotate_parser.add_argument("--trace-file", help="file holding trace text, - for stdin")
    annotate_parser.add_argument("--signature-file", help="optional local signature file")
    annotate_parser.add_argument("--style", choices=["likely", "best"], default="likely")
    annotate_parser.add_argument("--rpc-url", help="passed through to cast 4byte")
    annotate_parser.add_argument("--fuzzy", action="store_true", help="admit 2-byte prefix matches")
    annotate_parser.set_defaults(func=cmd_pipeline)

    lookup_parser = sub.add_parser("lookup-file", help="Match one selector against a local signature file")
    _add_common(lookup_parser)
    _add_request_inputs(lookup_parser)
    lookup_parser.add_argument("--selector", help="0x + 8 hex characters")
    lookup_parser.add_argument("--signature-file", help="file with one signature per line")
    lookup_parser.add_argument("--fuzzy", action="store_true", help="admit 2-byte prefix matches")
    lookup_parser.add_argument("--rpc-url", help="passed through to cast 4byte")
    lookup_parser.set_defaults(func=cmd_pipeline)

    four_byte_parser = sub.add_parser("4byte", help="Look up a selector in the signature directory")
    _add_common(four_byte_parser)
    four_byte_parser.add_argument("--selector", required=True, help="function selector or event topic")
    four_byte_parser.add_argument("--event", action="store_true", help="look up an event topic")
    four_byte_parser.set_defaults(func=cmd_four_byte)

    sig_parser = sub.add_parser("sig", help="Compute the selector of a signature")
    _add_common(sig_parser)
    sig_parser.add_argument("--signature", required=True, help="function or event signature")
    sig_parser.add_argument("--event", action="store_true", help="compute an event topic")
    sig_parser.set_defaults(func=cmd_sig)

    status_parser = sub.add_parser("anvil-status", help="Report whether a local anvil node is running")
    status_parser.add_argument("--compact", action="store_true", help="compact JSON output")
    status_parser.set_defaults(func=cmd_anvil_status)

    files_parser = sub.add_parser("list-files", help="List files in the workspace")
    files_parser.add_argument("--root", help="workspace root (default: EVM_TRACE_WORKSPACE)")
    files_parser.add_argument("--directory", default="", help="subdirectory to list")
    files_parser.add_argument("--compact", action="store_true", help="compact JSON output")
    files_parser.set_defaults(func=cmd_list_files)

    return parser


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(name)s %(levelname)s %(message)s",
        )
    return int(args.func(args))


if __name__ == "__main__":
    raise SystemExit(main())
