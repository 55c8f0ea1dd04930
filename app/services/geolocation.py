import asyncio
import logging
import time

from app.core.config import settings
from app.core.exceptions import (
    GeolocationError,
    NoPendingPositionRequestError,
    StalePositionError,
)
from app.schemas.location import GeolocationErrorCode, GpsCoordinates, PositionOptions

logger = logging.getLogger(__name__)

GEOLOCATION_ERROR_MESSAGES = {
    GeolocationErrorCode.PERMISSION_DENIED: "请允许浏览器获取您的位置权限",
    GeolocationErrorCode.POSITION_UNAVAILABLE: "GPS 信号弱，无法获取位置",
    GeolocationErrorCode.TIMEOUT: "定位请求超时",
}
GEOLOCATION_FAILED_MESSAGE = "定位失败"
GEOLOCATION_UNSUPPORTED_MESSAGE = "您的浏览器不支持定位功能"


def now_ms() -> int:
    return int(time.time() * 1000)


def geolocation_error_message(error: GeolocationError) -> str:
    """Localized message for a geolocation failure; unknown codes keep the platform text."""
    message = GEOLOCATION_ERROR_MESSAGES.get(error.code)
    if message is not None:
        return message
    return error.message or GEOLOCATION_FAILED_MESSAGE


class GeolocationProvider:
    """Single-shot source of the device's current position."""

    async def get_current_position(self, options: PositionOptions) -> GpsCoordinates:
        raise NotImplementedError


class StaticPositionProvider(GeolocationProvider):
    def __init__(self, latitude: float, longitude: float, accuracy: float = 0.0):
        self.latitude = latitude
        self.longitude = longitude
        self.accuracy = accuracy

    async def get_current_position(self, options: PositionOptions) -> GpsCoordinates:
        return GpsCoordinates(
            latitude=self.latitude,
            longitude=self.longitude,
            accuracy=self.accuracy,
            timestamp=now_ms(),
        )


class ReportedPositionProvider(GeolocationProvider):
    """
    Position supplied by a client that owns the real geolocation capability.

    ``get_current_position`` opens a single-resolution channel and waits for
    the client to call ``report_position`` or ``report_error``. The wait is
    bounded by ``options.timeout_ms``; expiry surfaces as a TIMEOUT error just
    like the platform API would.
    """

    def __init__(self):
        self._pending: asyncio.Future | None = None
        self._requested_at: int = 0
        self._maximum_age_ms: int = 0

    @property
    def has_pending_request(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def get_current_position(self, options: PositionOptions) -> GpsCoordinates:
        if self.has_pending_request:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        pending = loop.create_future()
        self._pending = pending
        self._requested_at = now_ms()
        self._maximum_age_ms = options.maximum_age_ms
        try:
            async with asyncio.timeout(options.timeout_ms / 1000):
                return await pending
        except TimeoutError as e:
            raise GeolocationError(GeolocationErrorCode.TIMEOUT, "Timeout expired") from e
        finally:
            if self._pending is pending:
                self._pending = None

    def report_position(
        self,
        latitude: float,
        longitude: float,
        accuracy: float = 0.0,
        timestamp: int | None = None,
    ) -> GpsCoordinates:
        if not self.has_pending_request:
            raise NoPendingPositionRequestError("No position request is waiting for a fix")
        timestamp = now_ms() if timestamp is None else timestamp
        if timestamp < self._requested_at - self._maximum_age_ms:
            raise StalePositionError(
                f"Fix taken at {timestamp} is older than allowed for the request "
                f"started at {self._requested_at}"
            )
        coords = GpsCoordinates(
            latitude=latitude, longitude=longitude, accuracy=accuracy, timestamp=timestamp
        )
        self._pending.set_result(coords)
        return coords

    def report_error(self, code: int, message: str = "") -> None:
        if not self.has_pending_request:
            raise NoPendingPositionRequestError("No position request is waiting for an error")
        logger.info("Client reported geolocation error %s: %s", code, message)
        self._pending.set_exception(GeolocationError(code, message))


def default_geolocation_provider() -> GeolocationProvider:
    if settings.DEVICE_LATITUDE is not None and settings.DEVICE_LONGITUDE is not None:
        return StaticPositionProvider(
            settings.DEVICE_LATITUDE, settings.DEVICE_LONGITUDE, settings.DEVICE_ACCURACY
        )
    return ReportedPositionProvider()
