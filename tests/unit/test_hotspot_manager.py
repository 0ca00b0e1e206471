from pathlib import Path

import pytest

from netcontrol.core.exceptions import ApplyError, CommandUnavailableError, InvalidConfigError
from netcontrol.schemas.hotspot import HotspotConfig
from netcontrol.services.hotspot import MODE_FIELD, PSK_FIELD, STATUS_FIELDS, HotspotManager
from tests.mocks.fake_host import ACTIVATE, ADD, DEACTIVATE, DELETE, MODIFY, PROFILE_LIST

FIXTURES = Path(__file__).parent.parent / "fixtures" / "nmcli"
RADIO = ("nmcli", "radio", "wifi")


def _mode_query(name):
    return ("nmcli", "-t", "-f", MODE_FIELD, "connection", "show", "id", name)


STATUS_QUERY = ("nmcli", "-t", "-f", ",".join(STATUS_FIELDS))
PSK_QUERY = ("nmcli", "-t", "-f", PSK_FIELD, "--show-secrets")


@pytest.fixture
def hotspot(nm, policy):
    return HotspotManager(nm, policy, interface="wlp3s0", profile_name="hotspot")


@pytest.fixture
def with_profile(fake_host):
    fake_host.on(*RADIO, stdout="enabled")
    fake_host.on(*PROFILE_LIST, stdout=(FIXTURES / "connection_show.txt").read_text())
    fake_host.on(*_mode_query("hotspot"), stdout=f"{MODE_FIELD}:ap")
    fake_host.on(*_mode_query("Cafe: Guest"), stdout=f"{MODE_FIELD}:infrastructure")
    return fake_host


@pytest.fixture
def without_profile(fake_host):
    fake_host.on(*RADIO, stdout="enabled")
    fake_host.on(*PROFILE_LIST, stdout="Wired connection 1:802-3-ethernet:eth0:yes")
    return fake_host


class TestFindProfile:
    @pytest.mark.asyncio
    async def test_finds_ap_mode_profile(self, hotspot, with_profile):
        assert await hotspot.find_profile() == "hotspot"

    @pytest.mark.asyncio
    async def test_renamed_ap_profile_is_found(self, hotspot, fake_host):
        fake_host.on(*PROFILE_LIST, stdout="HomeNet:802-11-wireless::no\nMyAP:802-11-wireless:wlp3s0:yes")
        fake_host.on(*_mode_query("MyAP"), stdout=f"{MODE_FIELD}:ap")
        assert await hotspot.find_profile() == "MyAP"

    @pytest.mark.asyncio
    async def test_no_ap_profile(self, hotspot, without_profile):
        assert await hotspot.find_profile() is None


class TestStatus:
    @pytest.mark.asyncio
    async def test_active_hotspot(self, hotspot, with_profile):
        with_profile.on(*STATUS_QUERY, stdout=(FIXTURES / "hotspot_active.txt").read_text())
        status = await hotspot.get_status()
        assert status.enabled is True
        assert status.status == "active"
        assert status.ssid == "Netctl-Hotspot"
        assert status.security == "wpa2"
        assert status.channel == 6
        assert status.hidden is False
        assert status.password is None
        assert with_profile.count(*PSK_QUERY) == 0

    @pytest.mark.asyncio
    async def test_password_only_on_request(self, hotspot, with_profile):
        with_profile.on(*STATUS_QUERY, stdout=(FIXTURES / "hotspot_active.txt").read_text())
        with_profile.on(*PSK_QUERY, stdout=f"{PSK_FIELD}:supersecret")
        status = await hotspot.get_status(reveal_password=True)
        assert status.password == "supersecret"

    @pytest.mark.asyncio
    async def test_existing_but_inactive_profile(self, hotspot, with_profile):
        with_profile.on(*STATUS_QUERY, stdout=(FIXTURES / "hotspot_inactive.txt").read_text())
        status = await hotspot.get_status()
        assert status.enabled is False
        assert status.status == "inactive"
        assert status.ssid == "Netctl-Hotspot"
        assert status.profile_name == "hotspot"

    @pytest.mark.asyncio
    async def test_no_profile_reports_defaults(self, hotspot, without_profile):
        status = await hotspot.get_status()
        assert status.enabled is False
        assert status.ssid == "Netctl-Hotspot"
        assert status.channel == 6

    @pytest.mark.asyncio
    async def test_listing_failure(self, hotspot, fake_host):
        fake_host.fail(*PROFILE_LIST)
        with pytest.raises(CommandUnavailableError):
            await hotspot.get_status()


class TestEnable:
    @pytest.mark.asyncio
    async def test_creates_profile(self, hotspot, without_profile):
        result = await hotspot.configure(
            HotspotConfig(enabled=True, ssid="Lab-AP", password="labpassword", channel=11)
        )
        assert result.enabled is True
        assert result.profile_name == "hotspot"
        assert without_profile.calls_with(*ADD) == [
            [
                "nmcli", "connection", "add",
                "type", "wifi",
                "ifname", "wlp3s0",
                "con-name", "hotspot",
                "autoconnect", "yes",
                "ssid", "Lab-AP",
                "802-11-wireless.mode", "ap",
                "802-11-wireless.band", "bg",
                "802-11-wireless.channel", "11",
                "802-11-wireless.hidden", "no",
                "ipv4.method", "shared",
                "wifi-sec.key-mgmt", "wpa-psk",
                "wifi-sec.proto", "rsn",
                "wifi-sec.psk", "labpassword",
            ]
        ]
        assert without_profile.calls_with(*ACTIVATE) == [["nmcli", "connection", "up", "id", "hotspot"]]

    @pytest.mark.asyncio
    async def test_five_ghz_channel_uses_band_a(self, hotspot, without_profile):
        await hotspot.configure(HotspotConfig(enabled=True, ssid="Lab-AP", password="labpassword", channel=36))
        add = without_profile.calls_with(*ADD)[0]
        assert add[add.index("802-11-wireless.band") + 1] == "a"

    @pytest.mark.asyncio
    async def test_updates_existing_profile(self, hotspot, with_profile):
        await hotspot.configure(HotspotConfig(enabled=True, ssid="Lab-AP", password="labpassword"))
        assert with_profile.count(*ADD) == 0
        modify = with_profile.calls_with(*MODIFY)
        assert len(modify) == 1
        assert modify[0][5:7] == ["802-11-wireless.ssid", "Lab-AP"]
        verbs = [c[2] for c in with_profile.calls if c[:2] == ["nmcli", "connection"]]
        assert verbs == ["down", "modify", "up"]

    @pytest.mark.asyncio
    async def test_open_hotspot_drops_security_setting(self, hotspot, with_profile):
        await hotspot.configure(HotspotConfig(enabled=True, ssid="Lab-AP", password="labpassword", security="none"))
        modify = with_profile.calls_with(*MODIFY)
        assert "wifi-sec.key-mgmt" not in modify[0]
        assert modify[1] == [
            "nmcli", "connection", "modify", "id", "hotspot", "remove", "802-11-wireless-security",
        ]

    @pytest.mark.asyncio
    async def test_open_hotspot_without_password_issues_no_commands(self, hotspot, fake_host):
        with pytest.raises(InvalidConfigError) as exc_info:
            await hotspot.configure(HotspotConfig(enabled=True, ssid="Lab-AP", password="", security="none"))
        assert exc_info.value.details == {"field": "password"}
        assert fake_host.calls == []

    @pytest.mark.asyncio
    async def test_invalid_password_issues_no_commands(self, hotspot, fake_host):
        with pytest.raises(InvalidConfigError):
            await hotspot.configure(HotspotConfig(enabled=True, ssid="Lab-AP", password="short"))
        assert fake_host.calls == []

    @pytest.mark.asyncio
    async def test_activation_failure(self, hotspot, without_profile):
        without_profile.fail(*ACTIVATE, stderr="Error: Connection activation failed")
        with pytest.raises(ApplyError):
            await hotspot.configure(HotspotConfig(enabled=True, ssid="Lab-AP", password="labpassword"))


class TestDisable:
    @pytest.mark.asyncio
    async def test_removes_profile(self, hotspot, with_profile):
        result = await hotspot.configure(HotspotConfig(enabled=False))
        assert result.enabled is False
        assert result.changed is True
        assert with_profile.calls_with(*DEACTIVATE) == [["nmcli", "connection", "down", "id", "hotspot"]]
        assert with_profile.calls_with(*DELETE) == [["nmcli", "connection", "delete", "id", "hotspot"]]

    @pytest.mark.asyncio
    async def test_no_profile_is_noop(self, hotspot, without_profile):
        result = await hotspot.configure(HotspotConfig(enabled=False))
        assert result.changed is False
        assert without_profile.count(*DELETE) == 0

    @pytest.mark.asyncio
    async def test_inactive_profile_still_deleted(self, hotspot, with_profile):
        with_profile.fail(*DEACTIVATE, stderr="Error: not an active connection")
        result = await hotspot.configure(HotspotConfig(enabled=False))
        assert result.changed is True
        assert with_profile.count(*DELETE) == 1

    @pytest.mark.asyncio
    async def test_delete_failure(self, hotspot, with_profile):
        with_profile.fail(*DELETE)
        with pytest.raises(ApplyError):
            await hotspot.configure(HotspotConfig(enabled=False))


class TestClients:
    @pytest.mark.asyncio
    async def test_lists_lowercased_macs(self, hotspot, fake_host):
        fake_host.on("iw", "dev", "wlp3s0", "station", "dump", stdout=(FIXTURES / "iw_station_dump.txt").read_text())
        clients = await hotspot.list_clients()
        assert [c.mac for c in clients] == ["3c:22:fb:01:02:03", "8c:85:90:aa:bb:cc"]

    @pytest.mark.asyncio
    async def test_iw_failure_is_empty(self, hotspot, fake_host):
        fake_host.fail("iw")
        assert await hotspot.list_clients() == []
