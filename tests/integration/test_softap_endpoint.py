from pathlib import Path

from netcontrol.services.hotspot import MODE_FIELD, PSK_FIELD, STATUS_FIELDS
from tests.mocks.fake_host import ADD, DELETE, PROFILE_LIST

FIXTURES = Path(__file__).parent.parent / "fixtures" / "nmcli"
STATUS_QUERY = ("nmcli", "-t", "-f", ",".join(STATUS_FIELDS))


def _script_hotspot_profile(fake_host):
    fake_host.on("nmcli", "radio", "wifi", stdout="enabled")
    fake_host.on(*PROFILE_LIST, stdout="hotspot:802-11-wireless:wlp3s0:yes")
    fake_host.on("nmcli", "-t", "-f", MODE_FIELD, stdout=f"{MODE_FIELD}:ap")


class TestSoftApStatus:
    async def test_active(self, client, fake_host):
        _script_hotspot_profile(fake_host)
        fake_host.on(*STATUS_QUERY, stdout=(FIXTURES / "hotspot_active.txt").read_text())
        response = await client.get("/api/softap/status")
        assert response.status_code == 200
        data = response.json()
        assert data["enabled"] is True
        assert data["status"] == "active"
        assert data["ssid"] == "Netctl-Hotspot"
        assert data["password"] is None

    async def test_reveal_password(self, client, fake_host):
        _script_hotspot_profile(fake_host)
        fake_host.on(*STATUS_QUERY, stdout=(FIXTURES / "hotspot_active.txt").read_text())
        fake_host.on("nmcli", "-t", "-f", PSK_FIELD, "--show-secrets", stdout=f"{PSK_FIELD}:supersecret")
        response = await client.get("/api/softap/status", params={"reveal_password": "true"})
        assert response.json()["password"] == "supersecret"

    async def test_no_hotspot(self, client, fake_host):
        response = await client.get("/api/softap/status")
        assert response.status_code == 200
        assert response.json()["enabled"] is False


class TestSoftApConfigure:
    async def test_enable_creates_profile(self, client, fake_host):
        fake_host.on("nmcli", "radio", "wifi", stdout="enabled")
        response = await client.post(
            "/api/softap/configure",
            json={"enabled": True, "ssid": "Lab-AP", "password": "labpassword", "channel": 1},
        )
        assert response.status_code == 200
        assert response.json()["enabled"] is True
        assert fake_host.count(*ADD) == 1

    async def test_disable_deletes_profile(self, client, fake_host):
        _script_hotspot_profile(fake_host)
        response = await client.post("/api/softap/configure", json={"enabled": False})
        assert response.status_code == 200
        assert response.json()["changed"] is True
        assert fake_host.calls_with(*DELETE) == [["nmcli", "connection", "delete", "id", "hotspot"]]

    async def test_open_hotspot_still_needs_password(self, client, fake_host):
        response = await client.post(
            "/api/softap/configure", json={"enabled": True, "ssid": "Lab-AP", "security": "none"}
        )
        assert response.status_code == 422
        assert response.json()["error"]["details"]["field"] == "password"
        assert fake_host.calls == []

    async def test_invalid_password_is_422(self, client, fake_host):
        response = await client.post(
            "/api/softap/configure", json={"enabled": True, "ssid": "Lab-AP", "password": "short"}
        )
        assert response.status_code == 422


class TestSoftApExtras:
    async def test_defaults(self, client):
        response = await client.get("/api/softap/defaults")
        assert response.status_code == 200
        data = response.json()
        assert data["interface"] == "wlp3s0"
        assert data["profile_name"] == "hotspot"
        assert data["channel"] == 6

    async def test_clients(self, client, fake_host):
        fake_host.on("iw", "dev", "wlp3s0", "station", "dump", stdout=(FIXTURES / "iw_station_dump.txt").read_text())
        response = await client.get("/api/softap/clients")
        assert response.status_code == 200
        assert len(response.json()) == 2
