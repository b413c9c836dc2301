"""Request/response contract helpers for the evm_trace wrapper."""

from __future__ import annotations

import json
import sys
from argparse import Namespace
from pathlib import Path
from typing import Any

from workspace_files import file_exists, read_text

DEFAULT_TRACE_VERBOSITY = 3
ANALYSIS_TRACE_VERBOSITY = 4
OUTPUT_FORMATS = {"text", "json"}

# argparse attribute -> request key, per subcommand.
REQUEST_FIELDS: dict[str, dict[str, str]] = {
    "trace": {
        "tx_hash": "tx_hash",
        "rpc_url": "rpc_url",
        "verbosity": "verbosity",
        "label": "labels",
        "match_signatures": "match_signatures",
        "output_format": "output_format",
        "signature_file": "signature_file",
        "fuzzy": "fuzzy",
    },
    "analyze": {
        "tx_hash": "tx_hash",
        "rpc_url": "rpc_url",
        "signature_file": "signature_file",
        "known_address": "known_addresses",
        "fuzzy": "fuzzy",
    },
    "annotate": {
        "signature_file": "signature_file",
        "fuzzy": "fuzzy",
        "style": "style",
        "rpc_url": "rpc_url",
    },
    "lookup-file": {
        "selector": "selector",
        "signature_file": "signature_file",
        "fuzzy": "fuzzy",
        "rpc_url": "rpc_url",
    },
}


def parse_request_from_args(args: Namespace) -> dict[str, Any]:
    if getattr(args, "request_file", None):
        with open(args.request_file, encoding="utf-8") as f:
            return json.load(f)
    if getattr(args, "request_json", None):
        return json.loads(args.request_json)

    req: dict[str, Any] = {}
    for attr, key in REQUEST_FIELDS.get(args.command, {}).items():
        value = getattr(args, attr, None)
        if value is not None:
            req[key] = value
    trace_file = getattr(args, "trace_file", None)
    if trace_file == "-":
        req["trace"] = sys.stdin.read()
    elif trace_file:
        path = Path(trace_file).expanduser()
        if not file_exists(path):
            raise FileNotFoundError(f"trace file not found: {path}")
        req["trace"] = read_text(path)
    return req


def optional_path(value: Any) -> tuple[bool, Path | None]:
    if value is None or value == "":
        return True, None
    if not isinstance(value, str):
        return False, None
    return True, Path(value).expanduser()


def string_list(value: Any) -> list[str] | None:
    if value is None:
        return []
    if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
        return None
    return list(value)
