"""Resolve 4-byte selectors against the signature directory and a local file."""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path

from cast_adapter import CommandRunner, four_byte_argv, run_command, sig_argv
from workspace_files import read_text

LOGGER = logging.getLogger(__name__)

FUZZY_PREFIX_LEN = 6


class SignatureSource(str, enum.Enum):
    LOCAL = "local"
    REMOTE = "remote"


@dataclass
class ResolutionEntry:
    selector: str
    local: list[str] = field(default_factory=list)
    remote: list[str] = field(default_factory=list)

    @property
    def has_matches(self) -> bool:
        return bool(self.local or self.remote)

    def signatures(self, source: SignatureSource) -> list[str]:
        return self.local if source is SignatureSource.LOCAL else self.remote


def parse_signature_lines(text: str) -> list[str]:
    out: list[str] = []
    for raw in text.splitlines():
        line = raw.strip()
        if not line or line.startswith("#") or "(" not in line:
            continue
        out.append(line)
    return out


def _split_directory_output(output: str) -> list[str]:
    text = output.strip()
    if not text:
        return []
    return [line.strip() for line in text.split("\n") if line.strip()]


async def load_signature_file(path: Path) -> list[str]:
    """Read candidate signatures; missing files raise ``FileNotFoundError``."""
    text = await asyncio.to_thread(read_text, path)
    return parse_signature_lines(text)


async def lookup_remote(
    selector: str,
    *,
    cast_binary: str,
    runner: CommandRunner = run_command,
    rpc_url: str | None = None,
) -> list[str]:
    result = await runner(four_byte_argv(cast_binary, selector, rpc_url))
    if not result.success:
        LOGGER.debug("4byte lookup failed for %s: %s", selector, result.output.strip())
        return []
    return _split_directory_output(result.output)


class LocalSignatureIndex:
    """Computes and memoises the selector of each local signature."""

    def __init__(
        self,
        signatures: list[str],
        *,
        cast_binary: str,
        runner: CommandRunner = run_command,
    ) -> None:
        self.signatures = list(signatures)
        self.cast_binary = cast_binary
        self.runner = runner
        self._computed: dict[str, str | None] = {}

    async def selector_for(self, signature: str) -> str | None:
        if signature not in self._computed:
            result = await self.runner(sig_argv(self.cast_binary, signature))
            if result.success and result.output.strip():
                self._computed[signature] = result.output.strip()
            else:
                LOGGER.debug("cast sig failed for %r: %s", signature, result.output.strip())
                self._computed[signature] = None
        return self._computed[signature]

    async def match(self, selector: str, *, fuzzy: bool = False) -> list[str]:
        target = selector.lower()
        matches: list[str] = []
        for signature in self.signatures:
            computed = await self.selector_for(signature)
            if computed is None:
                continue
            if computed.lower() == target:
                matches.append(signature)
            elif fuzzy and computed[:FUZZY_PREFIX_LEN].lower() == target[:FUZZY_PREFIX_LEN]:
                matches.append(f"{signature} (partial match: {computed})")
        return matches


async def open_local_index(
    signature_file: Path | None,
    *,
    cast_binary: str,
    runner: CommandRunner = run_command,
) -> LocalSignatureIndex | None:
    """Build the local index, degrading to ``None`` when the file is unusable."""
    if signature_file is None:
        return None
    try:
        signatures = await load_signature_file(signature_file)
    except (OSError, UnicodeDecodeError) as err:
        LOGGER.debug("local signature file unavailable (%s): %s", signature_file, err)
        return None
    return LocalSignatureIndex(signatures, cast_binary=cast_binary, runner=runner)


async def resolve_selectors(
    selectors: list[str],
    *,
    cast_binary: str,
    runner: CommandRunner = run_command,
    signature_file: Path | None = None,
    fuzzy: bool = False,
    rpc_url: str | None = None,
) -> dict[str, ResolutionEntry]:
    """Resolve each selector in order; one failing source never stops the rest."""
    local_index = await open_local_index(signature_file, cast_binary=cast_binary, runner=runner)

    resolutions: dict[str, ResolutionEntry] = {}
    for selector in selectors:
        entry = ResolutionEntry(selector=selector)
        entry.remote = await lookup_remote(
            selector,
            cast_binary=cast_binary,
            runner=runner,
            rpc_url=rpc_url,
        )
        if local_index is not None:
            entry.local = await local_index.match(selector, fuzzy=fuzzy)
        LOGGER.debug(
            "resolved %s: %d local, %d remote",
            selector,
            len(entry.local),
            len(entry.remote),
        )
        resolutions[selector] = entry
    return resolutions
