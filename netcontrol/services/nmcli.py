"""Parsers that turn raw nmcli / ip / procfs / iw output into typed models.

All functions here are pure: they take captured text and return values.
Tool output formats are an integration boundary, so every parser is covered
by fixture-based tests in tests/fixtures/.
"""

import ipaddress
import json
import re
from dataclasses import dataclass

from netcontrol.schemas.network import (
    AdminState,
    BoundProfileConfig,
    InterfaceCounters,
    InterfaceDescriptor,
    InterfaceKind,
)
from netcontrol.schemas.wifi import WifiNetwork

EMPTY_VALUES = {"", "--"}

_KIND_MAP: dict[str, InterfaceKind] = {
    "ethernet": "ethernet",
    "wired": "ethernet",
    "802-3-ethernet": "ethernet",
    "wifi": "wifi",
    "wireless": "wifi",
    "802-11-wireless": "wifi",
    "bridge": "bridge",
    "loopback": "loopback",
}


@dataclass
class ProfileSummary:
    """One row of `nmcli connection show`."""

    name: str
    type: str
    device: str | None
    active: bool

    @property
    def is_wireless(self) -> bool:
        return self.type in ("802-11-wireless", "wifi")


@dataclass
class DeviceRow:
    """One row of `nmcli device status`, TYPE and STATE as nmcli printed them."""

    name: str
    type: str
    state: str
    connection: str | None


def split_terse(line: str) -> list[str]:
    """Split an `nmcli -t` line on unescaped colons and unescape the fields."""
    fields: list[str] = []
    current: list[str] = []
    escaped = False
    for ch in line:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == ":":
            fields.append("".join(current))
            current = []
        else:
            current.append(ch)
    fields.append("".join(current))
    return fields


def map_kind(raw: str) -> InterfaceKind:
    return _KIND_MAP.get(raw.strip().lower(), "ethernet")


def map_state(raw: str, default: AdminState = "unavailable") -> AdminState:
    state = raw.strip().lower()
    if state.startswith("connected"):
        return "connected"
    if state.startswith(("disconnected", "connecting", "deactivating")):
        return "disconnected"
    if state == "unavailable":
        return "unavailable"
    if state == "unmanaged":
        return "unmanaged"
    return default


def parse_device_rows(stdout: str) -> list[DeviceRow]:
    """Parse `nmcli -t -f DEVICE,TYPE,STATE,CONNECTION device status` without mapping TYPE or STATE."""
    rows = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        fields = split_terse(line)
        if len(fields) < 3 or not fields[0] or not fields[1] or not fields[2]:
            continue
        connection = fields[3] if len(fields) > 3 else ""
        rows.append(
            DeviceRow(
                name=fields[0],
                type=fields[1].strip().lower(),
                state=fields[2],
                connection=None if connection in EMPTY_VALUES else connection,
            )
        )
    return rows


def parse_device_status(stdout: str, unknown_state: AdminState = "unavailable") -> list[InterfaceDescriptor]:
    """Parse `nmcli -t -f DEVICE,TYPE,STATE,CONNECTION device status`.

    States nmcli reports that have no AdminState equivalent become `unknown_state`.
    """
    return [
        InterfaceDescriptor(
            name=row.name,
            kind=map_kind(row.type),
            admin_state=map_state(row.state, unknown_state),
            bound_profile=row.connection,
        )
        for row in parse_device_rows(stdout)
    ]


def parse_key_values(stdout: str) -> dict[str, str]:
    """Parse `nmcli -t -f a,b,c connection show NAME` style `key:value` lines.

    Works for padded (non-terse) output too. Placeholder values ("--") become "".
    Repeated keys such as `IP4.DNS[1]`, `IP4.DNS[2]` are kept under their own names.
    """
    values: dict[str, str] = {}
    for line in stdout.splitlines():
        if ":" not in line:
            continue
        key, _, rest = line.partition(":")
        value = ":".join(split_terse(rest)).strip()
        values[key.strip()] = "" if value in EMPTY_VALUES else value
    return values


def collect_indexed(values: dict[str, str], prefix: str) -> list[str]:
    """Collect `PREFIX[1]`, `PREFIX[2]`, ... (or a bare `PREFIX`) values in order."""
    indexed = []
    for key, value in values.items():
        if not value:
            continue
        if key == prefix:
            indexed.append((0, value))
            continue
        match = re.fullmatch(re.escape(prefix) + r"\[(\d+)\]", key)
        if match:
            indexed.append((int(match.group(1)), value))
    return [v for _, v in sorted(indexed)]


def split_list(value: str) -> list[str]:
    return [p for p in re.split(r"[\s,]+", value.strip()) if p]


def parse_profile_list(stdout: str) -> list[ProfileSummary]:
    """Parse `nmcli -t -f NAME,TYPE,DEVICE,ACTIVE connection show`."""
    profiles = []
    for line in stdout.splitlines():
        if not line.strip():
            continue
        fields = split_terse(line)
        if not fields[0]:
            continue
        fields += [""] * (4 - len(fields))
        device = fields[2]
        profiles.append(
            ProfileSummary(
                name=fields[0],
                type=fields[1],
                device=None if device in EMPTY_VALUES else device,
                active=fields[3].strip().lower() == "yes",
            )
        )
    return profiles


def parse_profile_config(values: dict[str, str]) -> BoundProfileConfig:
    """Build the display view of a profile from its `ipv4.*` properties."""
    addresses = split_list(values.get("ipv4.addresses", ""))
    ipv4 = addresses[0] if addresses else ""
    subnet_mask = ""
    if "/" in ipv4:
        subnet_mask = prefix_to_mask(int(ipv4.split("/", 1)[1]))
    return BoundProfileConfig(
        interface=values.get("connection.interface-name", ""),
        dhcp=values.get("ipv4.method", "auto") == "auto",
        ipv4=ipv4,
        gateway=values.get("ipv4.gateway", ""),
        nameservers=split_list(values.get("ipv4.dns", "")),
        subnet_mask=subnet_mask,
    )


def prefix_to_mask(prefix: int) -> str:
    return str(ipaddress.IPv4Network(f"0.0.0.0/{prefix}").netmask)


def mask_to_prefix(mask: str) -> int:
    return ipaddress.IPv4Network(f"0.0.0.0/{mask}").prefixlen


def compose_address(ipv4: str, subnet_mask: str | None) -> str:
    """CIDR address for a static profile. Without a mask the address is host-only (/32)."""
    if "/" in ipv4:
        return ipv4
    prefix = mask_to_prefix(subnet_mask) if subnet_mask else 32
    return f"{ipv4}/{prefix}"


def parse_ip_addr_json(stdout: str) -> tuple[str | None, str | None]:
    """First IPv4 and IPv6 addresses (CIDR) from `ip -j addr show dev IFACE`."""
    data = json.loads(stdout or "[]")
    ipv4 = None
    ipv6 = None
    for entry in data:
        for addr in entry.get("addr_info", []):
            local = addr.get("local")
            if not local:
                continue
            cidr = f"{local}/{addr.get('prefixlen')}" if addr.get("prefixlen") is not None else local
            if addr.get("family") == "inet" and ipv4 is None:
                ipv4 = cidr
            elif addr.get("family") == "inet6" and ipv6 is None:
                ipv6 = cidr
    return ipv4, ipv6


def parse_default_gateway_json(stdout: str) -> str | None:
    """Gateway of the first default route in `ip -j route show default ...`."""
    for route in json.loads(stdout or "[]"):
        if route.get("gateway"):
            return route["gateway"]
    return None


def split_cidr(cidr: str) -> tuple[str, str | None]:
    """Split "192.168.0.10/24" into ("192.168.0.10", "255.255.255.0")."""
    if "/" not in cidr:
        return cidr, None
    address, prefix = cidr.split("/", 1)
    return address, prefix_to_mask(int(prefix))


def parse_radio_enabled(stdout: str) -> bool:
    return stdout.strip().lower() == "enabled"


def _leading_int(raw: str) -> int:
    match = re.match(r"\s*(\d+)", raw)
    return int(match.group(1)) if match else 0


def parse_wifi_list(stdout: str) -> list[WifiNetwork]:
    """Parse `nmcli -t -f SSID,SIGNAL,SECURITY,FREQ,CHAN device wifi list`."""
    networks = []
    for line in stdout.splitlines():
        fields = split_terse(line)
        if len(fields) < 2 or not fields[0] or not fields[1]:
            continue
        fields += [""] * (5 - len(fields))
        networks.append(
            WifiNetwork(
                ssid=fields[0],
                signal=_leading_int(fields[1]),
                security=fields[2] if fields[2] not in EMPTY_VALUES else "none",
                frequency=_leading_int(fields[3]),
                channel=_leading_int(fields[4]),
            )
        )
    return networks


def parse_ssid_list(stdout: str) -> set[str]:
    """SSIDs from `nmcli -t -f SSID device wifi list`."""
    return {split_terse(line)[0] for line in stdout.splitlines() if line.strip()}


def parse_proc_net_dev(text: str) -> dict[str, InterfaceCounters]:
    """Parse /proc/net/dev (two header lines, then `iface: rx... tx...`)."""
    counters = {}
    for line in text.splitlines()[2:]:
        if ":" not in line:
            continue
        name, _, rest = line.partition(":")
        stats = rest.split()
        if len(stats) < 12:
            continue
        nums = [int(s) if s.isdigit() else 0 for s in stats]
        counters[name.strip()] = InterfaceCounters(
            bytes_received=nums[0],
            packets_received=nums[1],
            errors=nums[2] + nums[10],
            dropped=nums[3] + nums[11],
            bytes_sent=nums[8],
            packets_sent=nums[9],
        )
    return counters


def parse_station_dump(text: str) -> list[str]:
    """Station MAC addresses from `iw dev IFACE station dump`."""
    return re.findall(r"^Station\s+([0-9a-fA-F:]{17})", text, flags=re.MULTILINE)


# ── WiFi security mapping ────────────────────────────────────────────────────


def security_properties(security: str, password: str) -> list[str]:
    """nmcli property/value pairs for a security mode. Empty for an open network."""
    if security == "none":
        return []
    if security == "wep":
        return [
            "wifi-sec.key-mgmt", "none",
            "wifi-sec.wep-key-type", "key",
            "wifi-sec.wep-key0", password,
        ]
    if security == "wpa":
        return ["wifi-sec.key-mgmt", "wpa-psk", "wifi-sec.proto", "wpa", "wifi-sec.psk", password]
    if security == "wpa3":
        return ["wifi-sec.key-mgmt", "sae", "wifi-sec.psk", password]
    return ["wifi-sec.key-mgmt", "wpa-psk", "wifi-sec.proto", "rsn", "wifi-sec.psk", password]


def security_from_properties(key_mgmt: str, proto: str = "") -> str:
    """Inverse of security_properties for values read back from a profile."""
    key_mgmt = key_mgmt.strip().lower()
    if key_mgmt == "sae":
        return "wpa3"
    if key_mgmt == "wpa-psk":
        return "wpa" if split_list(proto.lower()) == ["wpa"] else "wpa2"
    if key_mgmt == "none":
        return "wep"
    return "none"
