"""Point-in-time status of a local anvil node, read from the process table."""

from __future__ import annotations

import re
import subprocess
from typing import Any

DEFAULT_ANVIL_PORT = "8545"
PORT_RE = re.compile(r"--port[=\s]+(\d+)")


def parse_anvil_status(process_listing: str) -> dict[str, Any]:
    for line in process_listing.splitlines():
        argv = line.strip().split()
        if not argv or not argv[0].endswith("anvil"):
            continue
        port_match = PORT_RE.search(line)
        port = port_match.group(1) if port_match else DEFAULT_ANVIL_PORT
        return {"running": True, "port": port, "url": f"http://localhost:{port}"}
    return {"running": False}


def query_anvil_status() -> dict[str, Any]:
    """Inspect the process table on every call; nothing is cached."""
    try:
        proc = subprocess.run(
            ["ps", "-eo", "args"],
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError:
        return {"running": False}
    if proc.returncode != 0:
        return {"running": False}
    return parse_anvil_status(proc.stdout)
