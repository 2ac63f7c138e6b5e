"""
Parser for `roll status` console output.

Turns the colored, multi-line project blocks printed by `roll status` into
EnvironmentRecord values:

    ai-demo a magento2 project
      Project Directory: /Users/dev/ai-demo
      Project URL: https://app.ai-demo.test
      Docker Network: ai-demo_default
      Containers Running: 9

A record is emitted when its "Containers Running" line is seen. Scanning
stops at the services table header (a line with both NAME and STATE).
"""

from __future__ import annotations

from dataclasses import dataclass, replace
import re

ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")

SKIP_PHRASES = (
    "No running environments found",
    "Found the following",
    "RollDev Services",
)

PROJECT_RE = re.compile(r"^(\S+)\s+a\s+(\w+)\s+project$")
DIRECTORY_RE = re.compile(r"^\s*Project Directory:\s*(.+)$")
URL_RE = re.compile(r"^\s*Project URL:\s*(.+)$")
NETWORK_RE = re.compile(r"^\s*Docker Network:\s*(.+)$")
CONTAINERS_RE = re.compile(r"^\s*Containers Running:\s*(\d+)$")


@dataclass(frozen=True)
class EnvironmentRecord:
    """One running RollDev project environment."""

    name: str
    path: str | None
    url: str | None
    network: str | None
    containers: int
    raw: str = ""

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "url": self.url,
            "network": self.network,
            "containers": self.containers,
        }


@dataclass(frozen=True)
class _Pending:
    """Fields collected for the block currently being scanned."""

    name: str | None = None
    path: str | None = None
    url: str | None = None
    network: str | None = None


def strip_ansi(text: str) -> str:
    """Remove ANSI color sequences."""
    return ANSI_RE.sub("", text)


def _is_skipped(trimmed: str) -> bool:
    if not trimmed:
        return True
    return any(phrase in trimmed for phrase in SKIP_PHRASES)


def parse_environment_list(output: str) -> list[EnvironmentRecord]:
    """
    Parse `roll status` output into environment records.

    Args:
        output: Full stdout of `roll status`

    Returns:
        Records in the order their blocks appear. A new project header does
        not clear path/url/network left over from an unclosed block.
    """
    records: list[EnvironmentRecord] = []
    pending = _Pending()

    for line in output.split("\n"):
        trimmed = line.strip()
        if _is_skipped(trimmed):
            continue

        clean = strip_ansi(trimmed)

        m = PROJECT_RE.match(clean)
        if m:
            pending = replace(pending, name=m.group(1))
            continue

        m = DIRECTORY_RE.match(clean)
        if m:
            pending = replace(pending, path=m.group(1))
            continue

        m = URL_RE.match(clean)
        if m:
            pending = replace(pending, url=m.group(1))
            continue

        m = NETWORK_RE.match(clean)
        if m:
            pending = replace(pending, network=m.group(1))
            continue

        m = CONTAINERS_RE.match(clean)
        if m and pending.name:
            records.append(
                EnvironmentRecord(
                    name=pending.name,
                    path=pending.path,
                    url=pending.url,
                    network=pending.network,
                    containers=int(m.group(1)),
                    raw=line,
                )
            )
            pending = _Pending()
            continue

        # Services table follows the project blocks
        if "NAME" in clean and "STATE" in clean:
            break

    return records
