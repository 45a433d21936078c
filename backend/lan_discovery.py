from __future__ import annotations

import logging
import re
import subprocess
import time
from typing import Any, Dict, List

from config import ARP_TIMEOUT_S
from errors import DiscoveryError
from models import Device


logger = logging.getLogger(__name__)


# IPv4-shaped token, then (later on the same line) a MAC whose six pairs are
# joined by one separator, either ':' or '-'. Field order between the two
# varies across platforms, so anything may sit in between.
_ARP_LINE_RE = re.compile(
    r"(?P<ip>[0-9]{1,3}(?:\.[0-9]{1,3}){3})"
    r".*?"
    r"(?P<mac>[0-9a-f]{2}(?P<sep>[-:])[0-9a-f]{2}(?:(?P=sep)[0-9a-f]{2}){4})",
    re.IGNORECASE,
)


def _run_cmd(cmd: List[str], *, timeout_s: float) -> Dict[str, Any]:
    started = time.monotonic()
    try:
        proc = subprocess.run(
            cmd,
            capture_output=True,
            timeout=timeout_s,
        )
    except subprocess.TimeoutExpired:
        raise DiscoveryError(f"Command execution failed: {cmd[0]} timed out after {timeout_s}s")
    except OSError as e:
        raise DiscoveryError(f"Command execution failed: {e}") from e

    elapsed_ms = int((time.monotonic() - started) * 1000)
    try:
        stdout = (proc.stdout or b"").decode("utf-8")
    except UnicodeDecodeError as e:
        raise DiscoveryError("Command output was not valid UTF-8") from e

    return {
        "ok": proc.returncode == 0,
        "returncode": proc.returncode,
        "elapsed_ms": elapsed_ms,
        "stdout": stdout,
    }


def parse_arp_output(text: str) -> List[Device]:
    """Parse `arp -a` output (Linux, macOS or Windows layout) into devices.

    Lines without an IPv4 address followed by a MAC are skipped silently;
    headers, interface banners and `(incomplete)` rows are expected there.
    Only the first pair on each line is taken and duplicates are kept.
    """
    logger.debug("Parsing ARP table output")
    devices: List[Device] = []
    for line in (text or "").splitlines():
        m = _ARP_LINE_RE.search(line)
        if not m:
            continue
        devices.append(Device(ip=m.group("ip"), mac=m.group("mac").replace("-", ":")))
    logger.debug("Discovered %d devices", len(devices))
    return devices


def discover_devices(*, timeout_s: float = ARP_TIMEOUT_S) -> List[Device]:
    """Snapshot the system ARP table and return the devices in it."""

    logger.info("Running arp -a to scan network")
    r = _run_cmd(["arp", "-a"], timeout_s=timeout_s)
    if not r["ok"]:
        # Some platforms exit non-zero with a partially usable table.
        logger.warning("arp -a exited with status %s; parsing output anyway", r["returncode"])

    devices = parse_arp_output(r["stdout"])
    logger.debug("discover_devices found %d devices in %d ms", len(devices), r["elapsed_ms"])
    return devices
