from pathlib import Path

import pytest

from netcontrol.core.exceptions import (
    ApplyError,
    CommandUnavailableError,
    InvalidConfigError,
    PostValidationError,
    PreconditionError,
)
from netcontrol.schemas.wifi import WifiJoinRequest
from netcontrol.services.wifi import WifiConnector, validate_credentials
from tests.mocks.fake_host import ACTIVATE, ADD, DEACTIVATE, DELETE, DEVICE_STATUS, ip_addr_json

FIXTURES = Path(__file__).parent.parent / "fixtures" / "nmcli"
RADIO = ("nmcli", "radio", "wifi")
ACTIVE = ("nmcli", "-t", "-f", "NAME,TYPE,DEVICE,ACTIVE", "connection", "show", "--active")


@pytest.fixture
def connector(nm, verifier, policy):
    return WifiConnector(nm, verifier, policy, default_interface="wlan0", scan_wait=0)


@pytest.fixture
def wlan_up(fake_host):
    fake_host.on(*RADIO, stdout="enabled")
    fake_host.on(*DEVICE_STATUS, stdout="wlan0:wifi:connected:HomeNet")
    fake_host.on("nmcli", "-t", "-f", "SSID", "device", "wifi", "list", stdout="HomeNet\nOffice")
    fake_host.on("ip", "-j", "addr", "show", "dev", "wlan0", stdout=ip_addr_json("192.168.1.50/24"))
    return fake_host


class TestValidateCredentials:
    def test_open_network_needs_no_password(self):
        validate_credentials("Cafe", "", "none")

    def test_blank_ssid(self):
        with pytest.raises(InvalidConfigError):
            validate_credentials("  ", "password123", "wpa2")

    @pytest.mark.parametrize("password", ["", "short", "x" * 64])
    def test_wpa_password_length(self, password):
        with pytest.raises(InvalidConfigError):
            validate_credentials("HomeNet", password, "wpa2")

    def test_wep_needs_a_key(self):
        with pytest.raises(InvalidConfigError):
            validate_credentials("Old", "", "wep")
        validate_credentials("Old", "abcde", "wep")


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_wpa2(self, connector, wlan_up):
        result = await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))

        assert result.connected is True
        assert result.interface == "wlan0"
        assert result.attempts == 1
        assert wlan_up.calls_with(*DELETE) == [["nmcli", "connection", "delete", "id", "HomeNet"]]
        assert wlan_up.calls_with(*ADD) == [
            [
                "nmcli", "connection", "add",
                "type", "wifi",
                "ifname", "wlan0",
                "con-name", "HomeNet",
                "ssid", "HomeNet",
                "wifi-sec.key-mgmt", "wpa-psk",
                "wifi-sec.proto", "rsn",
                "wifi-sec.psk", "hunter2222",
                "802-11-wireless.hidden", "no",
            ]
        ]
        assert wlan_up.calls_with(*ACTIVATE) == [["nmcli", "connection", "up", "id", "HomeNet"]]

    @pytest.mark.asyncio
    async def test_delete_precedes_add(self, connector, wlan_up):
        await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))
        verbs = [c[2] for c in wlan_up.calls if c[:2] == ["nmcli", "connection"]]
        assert verbs.index("delete") < verbs.index("add") < verbs.index("up")

    @pytest.mark.asyncio
    async def test_open_hidden_network_on_explicit_interface(self, connector, wlan_up):
        wlan_up.on(*DEVICE_STATUS, stdout="wlan1:wifi:connected:Lab", replace=True)
        wlan_up.on("ip", "-j", "addr", "show", "dev", "wlan1", stdout=ip_addr_json("10.0.0.9/24"))
        result = await connector.connect(
            WifiJoinRequest(ssid="Lab", security="none", hidden=True, interface="wlan1")
        )
        add = wlan_up.calls_with(*ADD)[0]
        assert "wifi-sec.key-mgmt" not in add
        assert add[-2:] == ["802-11-wireless.hidden", "yes"]
        assert add[add.index("ifname") + 1] == "wlan1"
        assert result.interface == "wlan1"

    @pytest.mark.asyncio
    async def test_missing_stale_profile_is_fine(self, connector, wlan_up):
        wlan_up.fail(*DELETE, stderr="Error: unknown connection 'HomeNet'.", exit_code=10)
        result = await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))
        assert result.connected is True

    @pytest.mark.asyncio
    async def test_rescan_failure_is_not_fatal(self, connector, wlan_up):
        wlan_up.fail("nmcli", "device", "wifi", "rescan", stderr="Error: Scanning not allowed")
        result = await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))
        assert result.connected is True

    @pytest.mark.asyncio
    async def test_invisible_ssid_still_attempted(self, connector, wlan_up):
        result = await connector.connect(WifiJoinRequest(ssid="Elsewhere", password="hunter2222"))
        assert result.connected is True
        assert wlan_up.count(*ADD) == 1

    @pytest.mark.asyncio
    async def test_invalid_credentials_issue_no_commands(self, connector, fake_host):
        with pytest.raises(InvalidConfigError):
            await connector.connect(WifiJoinRequest(ssid="HomeNet", password="short"))
        assert fake_host.calls == []

    @pytest.mark.asyncio
    async def test_radio_turned_on_when_off(self, connector, wlan_up):
        wlan_up._scripts[RADIO] = [("disabled", "", 0), ("", "", 0), ("enabled", "", 0)]
        await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))
        assert ["nmcli", "radio", "wifi", "on"] in wlan_up.calls

    @pytest.mark.asyncio
    async def test_radio_that_stays_off(self, connector, fake_host):
        fake_host.on(*RADIO, stdout="disabled")
        with pytest.raises(PreconditionError) as exc_info:
            await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))
        assert exc_info.value.code == "radio_unavailable"
        assert fake_host.count(*ADD) == 0

    @pytest.mark.asyncio
    async def test_activation_failure_is_apply_error(self, connector, wlan_up):
        wlan_up.fail(*ACTIVATE, stderr="Error: Secrets were required, but not provided.", exit_code=4)
        with pytest.raises(ApplyError) as exc_info:
            await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))
        assert "hunter2222" not in str(exc_info.value.details)

    @pytest.mark.asyncio
    async def test_never_gets_address(self, connector, wlan_up):
        wlan_up.on("ip", "-j", "addr", "show", "dev", "wlan0", stdout=ip_addr_json(), replace=True)
        with pytest.raises(PostValidationError) as exc_info:
            await connector.connect(WifiJoinRequest(ssid="HomeNet", password="hunter2222"))
        assert exc_info.value.attempts == 3
        assert wlan_up.count(*DEACTIVATE) == 2


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_disconnects_client_profile(self, connector, fake_host):
        fake_host.on(*ACTIVE, stdout="Wired connection 1:802-3-ethernet:eth0:yes\nHomeNet:802-11-wireless:wlan0:yes")
        fake_host.on("nmcli", "-t", "-f", "802-11-wireless.mode", stdout="802-11-wireless.mode:infrastructure")
        result = await connector.disconnect()
        assert result.disconnected is True
        assert result.connection == "HomeNet"
        assert fake_host.calls_with(*DEACTIVATE) == [["nmcli", "connection", "down", "id", "HomeNet"]]

    @pytest.mark.asyncio
    async def test_hotspot_profile_is_left_alone(self, connector, fake_host):
        fake_host.on(*ACTIVE, stdout="hotspot:802-11-wireless:wlp3s0:yes")
        fake_host.on("nmcli", "-t", "-f", "802-11-wireless.mode", stdout="802-11-wireless.mode:ap")
        result = await connector.disconnect()
        assert result.disconnected is False
        assert result.message == "No active WiFi connection."
        assert fake_host.count(*DEACTIVATE) == 0

    @pytest.mark.asyncio
    async def test_nothing_active(self, connector, fake_host):
        fake_host.on(*ACTIVE, stdout="Wired connection 1:802-3-ethernet:eth0:yes")
        result = await connector.disconnect()
        assert result.disconnected is False

    @pytest.mark.asyncio
    async def test_deactivate_failure(self, connector, fake_host):
        fake_host.on(*ACTIVE, stdout="HomeNet:802-11-wireless:wlan0:yes")
        fake_host.fail(*DEACTIVATE)
        with pytest.raises(ApplyError):
            await connector.disconnect()

    @pytest.mark.asyncio
    async def test_listing_failure(self, connector, fake_host):
        fake_host.fail(*ACTIVE)
        with pytest.raises(CommandUnavailableError):
            await connector.disconnect()


class TestScan:
    @pytest.mark.asyncio
    async def test_scan_sorted_by_signal(self, connector, fake_host):
        fake_host.on(*RADIO, stdout="enabled")
        fake_host.on(
            "nmcli", "-t", "-f", "SSID,SIGNAL,SECURITY,FREQ,CHAN", "device", "wifi", "list",
            stdout=(FIXTURES / "wifi_list.txt").read_text(),
        )
        networks = await connector.scan()
        assert [n.ssid for n in networks] == ["HomeNet", "Office", "Cafe: Guest"]
        assert networks[-1].security == "none"
        assert networks[-1].channel == 36
        assert ["nmcli", "device", "wifi", "rescan"] in fake_host.calls

    @pytest.mark.asyncio
    async def test_scan_listing_failure(self, connector, fake_host):
        fake_host.on(*RADIO, stdout="enabled")
        fake_host.fail("nmcli", "-t", "-f", "SSID,SIGNAL,SECURITY,FREQ,CHAN")
        with pytest.raises(CommandUnavailableError):
            await connector.scan()
