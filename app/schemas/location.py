from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field


class IpInfo(BaseModel):
    """Network identity of the device, normalized from one IP provider."""

    model_config = ConfigDict(frozen=True)

    ip: str = ""
    city: str = ""
    region: str = ""
    country: str = ""
    org: str = ""


class GpsCoordinates(BaseModel):
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float = Field(default=0.0, ge=0)
    # epoch milliseconds, as reported by the device
    timestamp: int


class AddressInfo(BaseModel):
    formatted_address: str
    poi_name: str | None = None


class LocationStatus(str, Enum):
    IDLE = "IDLE"
    LOADING = "LOADING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    DENIED = "DENIED"


class GeolocationErrorCode(IntEnum):
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


class PositionOptions(BaseModel):
    enable_high_accuracy: bool = True
    timeout_ms: int = 15000
    # 0 means a fresh fix is required
    maximum_age_ms: int = 0


class LocationSnapshot(BaseModel):
    status: LocationStatus
    error_message: str = ""
    ip_info: IpInfo | None = None
    gps: GpsCoordinates | None = None
    address: AddressInfo | None = None


class GpsFixReport(BaseModel):
    """Position reported by the client's geolocation capability."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    accuracy: float = Field(default=0.0, ge=0)
    timestamp: int | None = None


class GeolocationErrorReport(BaseModel):
    code: int
    message: str = ""
