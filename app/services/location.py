import asyncio
import logging

from app.core.config import settings
from app.core.exceptions import (
    GeolocationError,
    IpInfoUnavailableError,
    LocationAssistantError,
    RefreshInProgressError,
)
from app.schemas.location import (
    AddressInfo,
    GpsCoordinates,
    IpInfo,
    LocationSnapshot,
    LocationStatus,
    PositionOptions,
)
from app.services.geolocation import (
    GEOLOCATION_FAILED_MESSAGE,
    GEOLOCATION_UNSUPPORTED_MESSAGE,
    GeolocationProvider,
    default_geolocation_provider,
    geolocation_error_message,
)
from app.services.grounding import AddressGroundingService, address_grounding_service
from app.services.ip_info import IpInfoService, ip_info_service
from app.utils.liveness import Liveness

logger = logging.getLogger(__name__)

ADDRESS_POI_NAME = "Google Maps Data"
ADDRESS_UNPARSED = "无法解析详细地址"
ADDRESS_FAILED = "地址解析超时或失败"


class LocationOrchestrator:
    """
    Drives one location view: IP lookup, device fix and address grounding.

    IP resolution and the position request start back to back and complete in
    any order. Address grounding only starts once a fix is in, and runs at
    most once per distinct (latitude, longitude) pair. After ``close()`` every
    late completion is dropped instead of being written back.
    """

    def __init__(
        self,
        ip_service: IpInfoService,
        grounding: AddressGroundingService,
        geolocation: GeolocationProvider | None,
        position_options: PositionOptions | None = None,
        language: str | None = None,
    ):
        self.ip_service = ip_service
        self.grounding = grounding
        self.geolocation = geolocation
        self.position_options = position_options or PositionOptions()
        self.language = language or settings.ADDRESS_LANGUAGE

        self.status = LocationStatus.IDLE
        self.error_message = ""
        self.ip_info: IpInfo | None = None
        self.gps: GpsCoordinates | None = None
        self.address: AddressInfo | None = None
        self._last_resolved: tuple[float, float] | None = None

        self._liveness = Liveness()
        self._tasks: set[asyncio.Task] = set()
        self._position_task: asyncio.Task | None = None

    @property
    def alive(self) -> bool:
        return self._liveness.alive

    def snapshot(self) -> LocationSnapshot:
        return LocationSnapshot(
            status=self.status,
            error_message=self.error_message,
            ip_info=self.ip_info,
            gps=self.gps,
            address=self.address,
        )

    def _spawn(self, coro) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def refresh(self) -> None:
        if self.status == LocationStatus.LOADING:
            raise RefreshInProgressError("A location refresh is already running")
        await self.load()

    async def load(self) -> None:
        """Start a full load cycle. Returns once both branches are started."""
        if not self.alive:
            return
        self.status = LocationStatus.LOADING
        self.error_message = ""
        self.address = None
        self._last_resolved = None

        self._spawn(self._load_ip_info(self._liveness))

        if self.geolocation is None:
            self.status = LocationStatus.ERROR
            self.error_message = GEOLOCATION_UNSUPPORTED_MESSAGE
            return

        self._position_task = self._spawn(self._acquire_position(self._liveness))

    async def _load_ip_info(self, liveness: Liveness) -> None:
        try:
            ip_info = await self.ip_service.fetch_ip_info()
        except IpInfoUnavailableError as e:
            logger.warning("IP fetch warning: %s", e)
            return
        if liveness.alive:
            self.ip_info = ip_info

    async def _acquire_position(self, liveness: Liveness) -> None:
        try:
            coords = await self.geolocation.get_current_position(self.position_options)
        except GeolocationError as e:
            if not liveness.alive:
                return
            self.status = LocationStatus.DENIED
            self.error_message = geolocation_error_message(e)
            logger.info("Geolocation failed with code %s: %s", e.code, self.error_message)
            return
        except Exception as e:
            logger.error(f"Geolocation provider error: {e}", exc_info=True)
            if liveness.alive:
                self.status = LocationStatus.DENIED
                self.error_message = GEOLOCATION_FAILED_MESSAGE
            return
        if not liveness.alive:
            return
        await self.handle_position(coords, liveness)

    async def handle_position(
        self, coords: GpsCoordinates, liveness: Liveness | None = None
    ) -> None:
        """Store a fix and ground its address unless that exact pair was already resolved."""
        liveness = liveness or self._liveness
        if not liveness.alive:
            return
        self.gps = coords
        if self._last_resolved == (coords.latitude, coords.longitude):
            return
        await self.resolve_address(coords.latitude, coords.longitude, liveness)

    async def resolve_address(
        self, latitude: float, longitude: float, liveness: Liveness | None = None
    ) -> None:
        liveness = liveness or self._liveness
        self._last_resolved = (latitude, longitude)

        try:
            result = await self.grounding.ground(latitude, longitude, self.language)
        except Exception as e:
            logger.error(
                f"Address grounding error: {e}",
                exc_info=not isinstance(e, LocationAssistantError),
            )
            if liveness.alive:
                self.address = AddressInfo(formatted_address=ADDRESS_FAILED, poi_name="")
                self.status = LocationStatus.SUCCESS
            return

        if not liveness.alive:
            return

        text = (result.text or "").strip()
        if text:
            self.address = AddressInfo(formatted_address=text, poi_name=ADDRESS_POI_NAME)
        else:
            self.address = AddressInfo(formatted_address=ADDRESS_UNPARSED, poi_name="")
        # a fix alone counts as success, the address is best effort
        self.status = LocationStatus.SUCCESS

    async def wait_for_position(self) -> None:
        """Wait for the current position branch, address grounding included."""
        if self._position_task is not None:
            await asyncio.gather(self._position_task, return_exceptions=True)

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        self._liveness.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


def create_location_orchestrator(
    geolocation: GeolocationProvider | None = None,
) -> LocationOrchestrator:
    return LocationOrchestrator(
        ip_service=ip_info_service,
        grounding=address_grounding_service,
        geolocation=geolocation if geolocation is not None else default_geolocation_provider(),
        position_options=PositionOptions(timeout_ms=settings.GEOLOCATION_TIMEOUT_MS),
    )
