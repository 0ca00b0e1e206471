import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from netcontrol.services.configurator import InterfaceConfigurator
from netcontrol.services.hotspot import HotspotManager
from netcontrol.services.inventory import InterfaceInventory
from netcontrol.services.network_manager import NetworkManagerClient
from netcontrol.services.orchestrator import NetworkOrchestrator
from netcontrol.services.retry import RetryPolicy
from netcontrol.services.timesync import TimeSyncManager
from netcontrol.services.verification import LinkVerifier
from netcontrol.services.wifi import WifiConnector
from tests.mocks.fake_host import FakeExecutor


@pytest.fixture
def fake_host():
    return FakeExecutor()


@pytest.fixture
def nm(fake_host):
    return NetworkManagerClient(fake_host)


@pytest.fixture
def policy():
    """Three attempts with no real waiting."""
    return RetryPolicy(max_attempts=3, settle_delay=0, backoff=0)


@pytest.fixture
def verifier(nm, policy):
    return LinkVerifier(nm, policy, reactivate_pause=0)


@pytest.fixture
def timesyncd_conf(tmp_path):
    path = tmp_path / "timesyncd.conf"
    path.write_text("[Time]\n#NTP=\n#FallbackNTP=ntp.ubuntu.com\n#RootDistanceMaxSec=5\n")
    return path


@pytest.fixture
def orchestrator(fake_host, nm, policy, verifier, timesyncd_conf):
    """Fully wired orchestrator against the scripted host, with zero delays."""
    return NetworkOrchestrator(
        network_manager=nm,
        inventory=InterfaceInventory(nm, fake_host),
        configurator=InterfaceConfigurator(nm, verifier, enable_settle_delay=0),
        wifi=WifiConnector(nm, verifier, policy, default_interface="wlan0", scan_wait=0),
        hotspot=HotspotManager(nm, policy, interface="wlp3s0", profile_name="hotspot"),
        timesync=TimeSyncManager(fake_host, nm, conf_path=timesyncd_conf),
    )


@pytest_asyncio.fixture
async def api_app(orchestrator):
    """FastAPI app wired to the scripted host."""
    from netcontrol.main import app

    app.state.orchestrator = orchestrator
    yield app


@pytest_asyncio.fixture
async def client(api_app):
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
