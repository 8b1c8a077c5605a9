"""Synchronous system queries re-run on every refresh tick."""

from __future__ import annotations

import os
import socket
import subprocess
from collections.abc import Iterable

import psutil

from sensorpanel.errors import DiskFreeError, InterfaceError, ProcessScanError

PLACEHOLDER_IPV4 = "0.0.0.0"
_DF_TIMEOUT = 5


def disk_free(mount: str = "/") -> str:
    """Return human-readable available space on `mount`, as reported by `df -h`."""
    try:
        result = subprocess.run(
            ["df", "-h", "--output=avail", mount],
            capture_output=True, text=True, timeout=_DF_TIMEOUT, check=True,
        )
    except FileNotFoundError:
        raise DiskFreeError("`df` not found") from None
    except subprocess.TimeoutExpired:
        raise DiskFreeError(f"`df` timed out after {_DF_TIMEOUT}s") from None
    except subprocess.CalledProcessError as e:
        raise DiskFreeError(f"`df` exited with status {e.returncode}") from e
    except UnicodeDecodeError:
        raise DiskFreeError("`df` output is not valid UTF-8") from None

    # First line is the "Avail" header
    lines = result.stdout.split("\n")
    if len(lines) < 2 or not lines[1].strip():
        raise DiskFreeError(f"unexpected `df` output: {result.stdout!r}")
    return lines[1].lstrip()


def scan_processes(names: Iterable[str]) -> set[str]:
    """Single pass over the process table; return which of `names` are running.

    A process matches when the base name of its executable equals the name.
    When the executable path is not readable (other users' processes without
    root) the kernel's process name is compared instead.
    """
    wanted = set(names)
    found: set[str] = set()
    if not wanted:
        return found

    try:
        for proc in psutil.process_iter(["exe", "name"]):
            exe = proc.info["exe"]
            base = os.path.basename(exe) if exe else proc.info["name"]
            if base in wanted:
                found.add(base)
                if found == wanted:
                    break
    except (psutil.Error, OSError) as e:
        raise ProcessScanError(str(e)) from e

    return found


def pgrep(name: str) -> bool:
    """True if a process whose executable is `name` is running."""
    return name in scan_processes([name])


def local_ipv4(interface: str) -> str:
    """First IPv4 address bound to `interface`.

    Raises:
        InterfaceError: the interface does not exist or has no IPv4 address.
    """
    for addr in psutil.net_if_addrs().get(interface, []):
        if addr.family == socket.AF_INET:
            return addr.address
    raise InterfaceError(interface)


def memory_used_percent() -> float:
    return psutil.virtual_memory().percent
