import asyncio

import httpx
import pytest

from app.core.exceptions import GeolocationError, GroundingFailureError, IpInfoUnavailableError
from app.schemas.grounding import GroundingResult
from app.schemas.location import GpsCoordinates, IpInfo, PositionOptions
from app.services.geolocation import GeolocationProvider

SHANGHAI = GpsCoordinates(latitude=31.2304, longitude=121.4737, accuracy=12.0, timestamp=1)
BEIJING = GpsCoordinates(latitude=39.9042, longitude=116.4074, accuracy=20.0, timestamp=2)
SHANGHAI_ADDRESS = "中国上海市黄浦区人民大道200号"


class FakeIpService:
    def __init__(self, ip_info: IpInfo | None = None, gate: asyncio.Event | None = None):
        self.ip_info = ip_info
        self.gate = gate
        self.calls = 0

    async def fetch_ip_info(self, client=None) -> IpInfo:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.ip_info is None:
            raise IpInfoUnavailableError("无法获取网络信息")
        return self.ip_info


class FakeGrounding:
    def __init__(
        self,
        text: str | None = SHANGHAI_ADDRESS,
        fail: bool = False,
        gate: asyncio.Event | None = None,
    ):
        self.text = text
        self.fail = fail
        self.gate = gate
        self.calls: list[tuple[float, float, str | None]] = []

    async def ground(self, latitude, longitude, language=None) -> GroundingResult:
        self.calls.append((latitude, longitude, language))
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise GroundingFailureError("upstream unavailable")
        return GroundingResult(text=self.text)


class FakeGeolocation(GeolocationProvider):
    """Hands out queued fixes or errors, one per request."""

    def __init__(self, *outcomes, gate: asyncio.Event | None = None):
        self.outcomes = list(outcomes)
        self.gate = gate
        self.requests: list[PositionOptions] = []

    async def get_current_position(self, options: PositionOptions) -> GpsCoordinates:
        self.requests.append(options)
        if self.gate is not None:
            await self.gate.wait()
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, GeolocationError):
            raise outcome
        return outcome


@pytest.fixture
def ip_info() -> IpInfo:
    return IpInfo(
        ip="203.0.113.7",
        city="Shanghai",
        region="Shanghai",
        country="China",
        org="China Telecom",
    )


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))
