"""Interface configurator — validate, apply, verify-with-retry for DHCP/static addressing."""

import asyncio
import ipaddress
from enum import Enum

import structlog

from netcontrol.core.exceptions import (
    ApplyError,
    CommandUnavailableError,
    InvalidConfigError,
    NetControlError,
    PreconditionError,
)
from netcontrol.core.executor import ExecError
from netcontrol.schemas.network import InterfaceDescriptor, NetworkConfigRequest, NetworkConfigResult
from netcontrol.services import nmcli
from netcontrol.services.network_manager import NetworkManagerClient
from netcontrol.services.verification import LinkVerifier

logger = structlog.get_logger()

DHCP_PROPERTIES = ["ipv4.method", "auto", "ipv4.addresses", "", "ipv4.gateway", "", "ipv4.dns", ""]


class ConfigureState(str, Enum):
    UNCONFIGURED = "unconfigured"
    VALIDATING = "validating"
    APPLYING = "applying"
    VERIFYING_UP = "verifying_up"
    VERIFIED = "verified"
    FAILED = "failed"


def validate_request(request: NetworkConfigRequest) -> None:
    """Reject malformed requests before any host command runs."""
    if not request.interface.strip():
        raise InvalidConfigError("Interface name is required.")
    if request.dhcp:
        return
    if not request.ipv4 or not request.gateway:
        raise InvalidConfigError("IP address and gateway are required for static configuration.")
    try:
        ipaddress.IPv4Interface(request.ipv4)
        ipaddress.IPv4Address(request.gateway)
        if request.subnet_mask:
            nmcli.mask_to_prefix(request.subnet_mask)
        for server in request.nameservers or []:
            ipaddress.ip_address(server)
    except ValueError as e:
        raise InvalidConfigError(f"Invalid static addressing: {e}") from e


class InterfaceConfigurator:
    """Drives Unconfigured -> Validating -> Applying -> VerifyingUp -> Verified | Failed."""

    def __init__(
        self,
        network_manager: NetworkManagerClient,
        verifier: LinkVerifier,
        enable_settle_delay: float = 3.0,
    ):
        self._nm = network_manager
        self._verifier = verifier
        self._enable_settle_delay = enable_settle_delay

    @staticmethod
    def _transition(iface: str, state: ConfigureState, **context) -> None:
        logger.info("configure_state", interface=iface, state=state.value, **context)

    async def configure(self, request: NetworkConfigRequest) -> NetworkConfigResult:
        iface = request.interface
        method = "dhcp" if request.dhcp else "static"
        self._transition(iface, ConfigureState.UNCONFIGURED, method=method)
        try:
            self._transition(iface, ConfigureState.VALIDATING)
            validate_request(request)
            profile = await self._check_preconditions(iface)

            self._transition(iface, ConfigureState.APPLYING, profile=profile)
            address = await self._apply(profile, request)

            self._transition(iface, ConfigureState.VERIFYING_UP, profile=profile)
            outcome = await self._verifier.verify(iface, profile)
        except NetControlError as e:
            self._transition(iface, ConfigureState.FAILED, code=e.code, reason=e.message)
            raise

        self._transition(iface, ConfigureState.VERIFIED, attempts=outcome.attempts)
        return NetworkConfigResult(
            interface=iface,
            configured=True,
            method=method,
            profile=profile,
            address=address,
            attempts=outcome.attempts,
        )

    # ── Phase A ──────────────────────────────────────────────────────────────

    async def _check_preconditions(self, iface: str) -> str:
        try:
            device = await self._nm.find_device(iface)
        except ExecError as e:
            raise CommandUnavailableError("Failed to read device status.") from e
        if device is None:
            raise PreconditionError(f"Interface {iface} does not exist.", code="interface_not_found")

        if not await self._nm.has_carrier(iface):
            raise PreconditionError(
                f"No physical link on {iface}. Connect the cable and try again.",
                code="no_physical_link",
            )

        await self._ensure_enabled(device)
        profile = await self._resolve_profile(device)
        logger.info("preconditions_passed", interface=iface, profile=profile)
        return profile

    async def _ensure_enabled(self, device: InterfaceDescriptor) -> None:
        iface = device.name
        if device.admin_state == "unavailable":
            raise PreconditionError(f"Interface {iface} is unavailable.", code="interface_unavailable")
        if device.admin_state != "disconnected":
            return

        logger.info("interface_enabling", interface=iface)
        try:
            await self._nm.connect_device(iface)
        except ExecError as e:
            logger.warning("interface_connect_command_failed", interface=iface, error=e.stderr)
        await asyncio.sleep(self._enable_settle_delay)

        state = await self._nm.device_state(iface)
        if state == "unavailable":
            raise PreconditionError(f"Interface {iface} is unavailable.", code="interface_unavailable")
        if state == "connected":
            logger.info("interface_enabled", interface=iface)
        else:
            # Recoverable: the profile apply step may still bring it up.
            logger.warning("interface_enable_incomplete", interface=iface, state=state)

    async def _resolve_profile(self, device: InterfaceDescriptor) -> str:
        iface = device.name
        try:
            profile = await self._nm.profile_for_interface(iface)
        except ExecError as e:
            raise CommandUnavailableError("Failed to list connection profiles.") from e
        if profile:
            return profile

        if device.kind != "ethernet":
            raise PreconditionError(
                f"No connection profile is bound to {iface}.",
                code="profile_not_found",
            )

        auto_name = f"{iface}-auto"
        logger.info("profile_auto_create", interface=iface, profile=auto_name)
        try:
            await self._nm.add_profile(["type", "ethernet", "ifname", iface, "con-name", auto_name])
            await self._nm.activate(auto_name)
            profile = await self._nm.profile_for_interface(iface)
        except ExecError as e:
            raise ApplyError(f"Failed to create a profile for {iface}.", details={"stderr": e.stderr}) from e
        if not profile:
            raise ApplyError(f"Failed to create a profile for {iface}.")
        return profile

    # ── Phase B ──────────────────────────────────────────────────────────────

    async def _apply(self, profile: str, request: NetworkConfigRequest) -> str | None:
        address = None
        if request.dhcp:
            properties = list(DHCP_PROPERTIES)
        else:
            address = nmcli.compose_address(request.ipv4, request.subnet_mask)
            properties = [
                "ipv4.method", "manual",
                "ipv4.addresses", address,
                "ipv4.gateway", request.gateway,
            ]
            if request.nameservers:
                properties += ["ipv4.dns", ",".join(request.nameservers)]

        try:
            # One modify call so the profile is never left half-applied.
            await self._nm.modify_profile(profile, properties)
            await self._nm.activate(profile)
        except ExecError as e:
            logger.error("profile_apply_failed", profile=profile, error=e.stderr)
            raise ApplyError(
                f"Failed to apply configuration to {profile}.",
                details={"profile": profile, "stderr": e.stderr},
            ) from e

        logger.info(
            "profile_applied",
            interface=request.interface,
            profile=profile,
            method="dhcp" if request.dhcp else "static",
            address=address,
            gateway=request.gateway if not request.dhcp else None,
        )
        return address
