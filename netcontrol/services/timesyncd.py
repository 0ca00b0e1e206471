"""systemd-timesyncd configuration file and `timedatectl` status parsing.

The config file is line oriented (`KEY=value`). Only `NTP=` and `FallbackNTP=`
are interpreted. A `#` prefix marks a declaration as administratively disabled,
the last matching line wins, and the first whitespace/comma separated token of
the value is the effective server. Lines with an empty value are templates and
do not count as declarations.
"""

import os
import re
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from pathlib import Path

from netcontrol.schemas.ntp import TimesyncSummary

PRIMARY_KEY = "NTP"
FALLBACK_KEY = "FallbackNTP"

_DECLARATION_RE = re.compile(r"^\s*(?P<comment>#\s*)?(?P<key>NTP|FallbackNTP)\s*=\s*(?P<value>.*?)\s*$")
_SERVER_RE = re.compile(r"[A-Za-z0-9\[:][A-Za-z0-9.:%\[\]_-]*")
_OFFSET_RE =re.compile(r"([+-]?[0-9]+(?:\.[0-9]+)?)\s*(us|µs|ms|s)\b", re.IGNORECASE)


@dataclass
class ServerDeclaration:
    servers: list[str] = field(default_factory=list)
    commented: bool = False

    @property
    def server(self) -> str:
        return self.servers[0] if self.servers else ""


@dataclass
class TimesyncDeclarations:
    primary: ServerDeclaration | None = None
    fallback: ServerDeclaration | None = None


def _split_servers(value: str) -> list[str]:
    return [s for s in re.split(r"[\s,]+", value) if s]


def is_valid_server(value: str) -> bool:
    """True for a single hostname or IPv4/IPv6 literal that can be written as one conf value."""
    return bool(_SERVER_RE.fullmatch(value))


def parse_declarations(text: str) -> TimesyncDeclarations:
    """Effective (last-wins) primary and fallback declarations from timesyncd.conf text."""
    result = TimesyncDeclarations()
    for line in text.splitlines():
        match = _DECLARATION_RE.match(line)
        if not match:
            continue
        servers = _split_servers(match.group("value"))
        if not servers:
            continue
        declaration = ServerDeclaration(servers=servers, commented=bool(match.group("comment")))
        if match.group("key") == PRIMARY_KEY:
            result.primary = declaration
        else:
            result.fallback = declaration
    return result


def _render_line(key: str, server: str, commented: bool) -> str:
    return f"{'#' if commented else ''}{key}={server}"


def rewrite_declarations(
    text: str,
    primary_server: str,
    primary_commented: bool = False,
    fallback_server: str | None = None,
    fallback_commented: bool = False,
) -> str:
    """Drop every NTP=/FallbackNTP= line (commented or not) and append fresh ones."""
    kept = [line for line in text.splitlines() if not _DECLARATION_RE.match(line)]
    if not any(line.strip() == "[Time]" for line in kept):
        kept.insert(0, "[Time]")
    while kept and not kept[-1].strip():
        kept.pop()
    kept.append(_render_line(PRIMARY_KEY, primary_server, primary_commented))
    if fallback_server:
        kept.append(_render_line(FALLBACK_KEY, fallback_server, fallback_commented))
    return "\n".join(kept) + "\n"


def backup_file(path: Path) -> Path | None:
    """Copy `path` to `path.bak-<epoch>` for manual rollback. Returns None if `path` is missing.

    Earlier backups are never overwritten: a second backup within the same
    second gets a `.1`, `.2`, ... suffix.
    """
    if not path.exists():
        return None
    stem = f"{path.name}.bak-{int(time.time())}"
    backup = path.with_name(stem)
    counter = 0
    while backup.exists():
        counter += 1
        backup = path.with_name(f"{stem}.{counter}")
    shutil.copy2(path, backup)
    return backup


def write_atomic(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        if path.exists():
            shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _offset_to_ms(raw: str) -> float | None:
    match = _OFFSET_RE.search(raw)
    if not match:
        return None
    value = float(match.group(1))
    unit = match.group(2).lower()
    if unit in ("us", "µs"):
        value /= 1000
    elif unit == "s":
        value *= 1000
    return round(value, 1)


def parse_timesync_status(stdout: str) -> TimesyncSummary:
    """Parse `timedatectl timesync-status` into a diagnostic summary."""
    summary = TimesyncSummary()
    for line in stdout.splitlines():
        key, sep, value = line.strip().partition(":")
        if not sep:
            continue
        key = key.strip().lower()
        value = value.strip()
        if not value:
            continue
        if key == "server":
            match = re.match(r"(?P<addr>\S+)(?:\s+\((?P<name>[^)]+)\))?", value)
            summary.server = match.group("addr") if match else value
            summary.server_name = match.group("name") if match else None
        elif key == "stratum":
            try:
                summary.stratum = int(value)
            except ValueError:
                summary.stratum = None
        elif key == "offset":
            summary.offset_ms = _offset_to_ms(value)
        elif key == "poll interval":
            summary.poll_interval = value
        elif key == "last synchronization":
            summary.last_sync = value
    return summary


def parse_show_properties(stdout: str) -> dict[str, str]:
    """Parse `timedatectl show` `Key=value` lines."""
    properties = {}
    for line in stdout.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            properties[key.strip()] = value.strip()
    return properties
