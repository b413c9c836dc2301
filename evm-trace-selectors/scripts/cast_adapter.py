"""Thin async adapter over the `cast` CLI for selector and trace primitives."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

LOGGER = logging.getLogger(__name__)

SELECTOR_HEX_LEN = 10
TOPIC_HEX_LEN = 66


@dataclass(frozen=True)
class CommandResult:
    success: bool
    output: str


CommandRunner = Callable[[list[str]], Awaitable[CommandResult]]


def default_cast_binary() -> str:
    """Prefer an explicit FOUNDRY_BIN, then ~/.foundry/bin/cast, then PATH."""
    foundry_bin = os.environ.get("FOUNDRY_BIN", "").strip()
    if foundry_bin:
        return str(Path(foundry_bin).expanduser() / "cast")
    home_cast = Path.home() / ".foundry" / "bin" / "cast"
    if home_cast.exists():
        return str(home_cast)
    return "cast"


def is_cast_installed(cast_binary: str = "cast") -> bool:
    return shutil.which(cast_binary) is not None


async def run_command(argv: list[str]) -> CommandResult:
    LOGGER.debug("exec %s", argv)
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return CommandResult(False, f"command not found: {argv[0]}")
    except OSError as err:
        return CommandResult(False, str(err))

    stdout_raw, stderr_raw = await proc.communicate()
    stdout = stdout_raw.decode("utf-8", errors="replace")
    stderr = stderr_raw.decode("utf-8", errors="replace")

    if proc.returncode != 0:
        message = stderr.strip() or stdout.strip() or f"{argv[0]} failed with exit code {proc.returncode}"
        return CommandResult(False, message)
    if stderr.strip() and not stdout.strip():
        return CommandResult(False, stderr)
    return CommandResult(True, stdout)


def sig_argv(cast_binary: str, signature: str) -> list[str]:
    return [cast_binary, "sig", signature]


def sig_event_argv(cast_binary: str, signature: str) -> list[str]:
    return [cast_binary, "sig-event", signature]


def four_byte_argv(cast_binary: str, selector: str, rpc_url: str | None = None) -> list[str]:
    argv = [cast_binary, "4byte", selector]
    if rpc_url:
        argv.extend(["--rpc-url", rpc_url])
    return argv


def four_byte_event_argv(cast_binary: str, topic: str) -> list[str]:
    return [cast_binary, "4byte-event", topic]


def run_trace_argv(
    cast_binary: str,
    tx_hash: str,
    *,
    rpc_url: str | None = None,
    verbosity: int | None = None,
    labels: list[str] | None = None,
    json_output: bool = False,
) -> list[str]:
    argv = [cast_binary, "run", tx_hash, "--trace"]
    if rpc_url:
        argv.extend(["--rpc-url", rpc_url])
    if verbosity is not None and 0 <= verbosity <= 5:
        argv.extend(["--verbosity", str(verbosity)])
    for label in labels or []:
        argv.extend(["--label", label])
    if json_output:
        argv.append("--json")
    return argv


async def cast_function_selector(
    signature: str,
    *,
    cast_binary: str,
    runner: CommandRunner = run_command,
) -> str:
    result = await runner(sig_argv(cast_binary, signature))
    if not result.success:
        raise ValueError(result.output.strip() or "cast sig failed")
    stdout = result.output.strip()
    if not stdout.startswith("0x") or len(stdout) != SELECTOR_HEX_LEN:
        raise ValueError(f"unexpected cast sig output: {stdout}")
    return stdout.lower()


async def cast_event_topic0(
    event_signature: str,
    *,
    cast_binary: str,
    runner: CommandRunner = run_command,
) -> str:
    result = await runner(sig_event_argv(cast_binary, event_signature))
    if not result.success:
        raise ValueError(result.output.strip() or "cast sig-event failed")
    stdout = result.output.strip()
    if not stdout.startswith("0x") or len(stdout) != TOPIC_HEX_LEN:
        raise ValueError(f"unexpected cast sig-event output: {stdout}")
    return stdout.lower()
