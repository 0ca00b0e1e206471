import asyncio

import typer
from rich.console import Console
from rich.table import Table

from netcontrol.core.exceptions import NetControlError

console = Console()
cli_app = typer.Typer(name="netctl", help="Network control administrative CLI")


def _run_async(coro):
    """Run async code from sync CLI context."""
    return asyncio.run(coro)


def _orchestrator():
    from netcontrol.config import settings
    from netcontrol.core.executor import SubprocessExecutor
    from netcontrol.services.orchestrator import NetworkOrchestrator

    executor = SubprocessExecutor(
        default_timeout=settings.netctl_command_timeout,
        use_sudo=settings.netctl_use_sudo,
    )
    return NetworkOrchestrator.from_settings(executor, settings)


def _call(coro):
    try:
        return _run_async(coro)
    except NetControlError as e:
        console.print(f"[bold red]{e.code}:[/bold red] {e.message}")
        raise typer.Exit(code=1)


@cli_app.command("interfaces")
def list_interfaces():
    """List network interfaces with live addressing."""
    interfaces = _call(_orchestrator().list_interfaces())

    table = Table(title="Network Interfaces")
    table.add_column("Name", style="cyan")
    table.add_column("Kind")
    table.add_column("State", style="green")
    table.add_column("Profile")
    table.add_column("IPv4")
    table.add_column("Gateway")

    for iface in interfaces:
        ipv4 = f"{iface.ipv4} / {iface.subnet_mask}" if iface.ipv4 else "—"
        table.add_row(
            iface.name,
            iface.kind,
            iface.admin_state,
            iface.bound_profile or "—",
            ipv4,
            iface.gateway or "—",
        )

    console.print(table)


@cli_app.command("configure")
def configure(
    interface: str = typer.Argument(help="Interface to configure, e.g. eth0"),
    dhcp: bool = typer.Option(False, "--dhcp", help="Use DHCP instead of static addressing"),
    ipv4: str = typer.Option(None, "--ip", help="Static IPv4 address (plain or CIDR)"),
    gateway: str = typer.Option(None, "--gateway", help="Default gateway"),
    subnet_mask: str = typer.Option(None, "--mask", help="Subnet mask, e.g. 255.255.255.0"),
    dns: list[str] = typer.Option(None, "--dns", help="Nameserver (repeatable)"),
):
    """Apply DHCP or static addressing and wait for the link to come up."""
    from netcontrol.schemas.network import NetworkConfigRequest

    request = NetworkConfigRequest(
        interface=interface,
        dhcp=dhcp,
        ipv4=ipv4,
        gateway=gateway,
        subnet_mask=subnet_mask,
        nameservers=dns or None,
    )
    with console.status(f"Configuring {interface}..."):
        result = _call(_orchestrator().configure_interface(request))

    console.print(f"\n[bold green]{interface} configured ({result.method}).[/bold green]\n")
    console.print(f"  Profile:  {result.profile}")
    if result.address:
        console.print(f"  Address:  {result.address}")
    console.print(f"  Attempts: {result.attempts}\n")


@cli_app.command("ntp-status")
def ntp_status():
    """Show timezone, sync state and declared NTP servers."""
    status = _call(_orchestrator().get_ntp_status())

    def _server(name: str, commented: bool) -> str:
        if not name:
            return "—"
        return f"{name} [dim](commented)[/dim]" if commented else name

    table = Table(title="Time Sync", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Timezone", status.timezone)
    table.add_row("Current time", status.current_time)
    table.add_row("Synchronized", "yes" if status.synchronized else "no")
    table.add_row("Primary", _server(status.primary_server, status.primary_server_commented))
    table.add_row("Fallback", _server(status.fallback_server, status.fallback_server_commented))
    table.add_row("Active server", status.active_server or "—")
    table.add_row("Last sync", status.last_sync or "—")
    console.print(table)


@cli_app.command("ntp-check")
def ntp_check(
    host: str = typer.Argument(help="NTP server address to probe"),
):
    """Classify reachability of an NTP server."""
    result = _call(_orchestrator().check_ntp_connectivity(host))

    if result.status == "success":
        summary = result.primary.timesync
        console.print(f"[bold green]success[/bold green] via {result.used_iface}")
        console.print(f"  Stratum: {summary.stratum}")
        console.print(f"  Offset:  {summary.offset_ms} ms")
        return

    console.print(f"[bold red]{result.status}[/bold red] via {result.used_iface} ({result.iface_link})")
    if result.error:
        console.print(f"  {result.error.message}")
    raise typer.Exit(code=1)


@cli_app.command("hotspot-status")
def hotspot_status(
    show_password: bool = typer.Option(False, "--show-password", help="Also read the stored password"),
):
    """Show whether the hotspot is running and with which settings."""
    status = _call(_orchestrator().get_hotspot_status(reveal_password=show_password))

    state = "[bold green]active[/bold green]" if status.enabled else "[yellow]inactive[/yellow]"
    console.print(f"\nHotspot {status.profile_name or '—'}: {state}")
    console.print(f"  SSID:     {status.ssid or '—'}")
    if status.enabled:
        console.print(f"  Security: {status.security}")
        console.print(f"  Channel:  {status.channel or 'auto'}")
        console.print(f"  Hidden:   {'yes' if status.hidden else 'no'}")
    if status.password:
        console.print(f"  Password: {status.password}")
    console.print()


@cli_app.command("wifi-scan")
def wifi_scan():
    """List visible WiFi networks, strongest first."""
    networks = _call(_orchestrator().scan_wifi())

    if not networks:
        console.print("[dim]No networks found.[/dim]")
        return

    table = Table(title="WiFi Networks")
    table.add_column("SSID", style="cyan")
    table.add_column("Signal", justify="right")
    table.add_column("Security")
    table.add_column("Channel", justify="right")

    for network in networks:
        table.add_row(network.ssid, str(network.signal), network.security, str(network.channel))

    console.print(table)


def main():
    cli_app()


if __name__ == "__main__":
    main()
