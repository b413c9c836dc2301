"""Stable error codes emitted in evm_trace payloads."""

from __future__ import annotations

ERR_INVALID_REQUEST = "INVALID_REQUEST"
ERR_INVALID_SELECTOR = "INVALID_SELECTOR"
ERR_SIGNATURE_FILE_NOT_FOUND = "SIGNATURE_FILE_NOT_FOUND"
ERR_SIGNATURE_FILE_EMPTY = "SIGNATURE_FILE_EMPTY"
ERR_CAST_NOT_INSTALLED = "CAST_NOT_INSTALLED"
ERR_TRACE_FAILED = "TRACE_FAILED"
ERR_LOOKUP_FAILED = "LOOKUP_FAILED"
ERR_EXEC_TIMEOUT = "EXEC_TIMEOUT"
ERR_INTERNAL = "INTERNAL_ERROR"
