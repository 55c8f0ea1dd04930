class LocationAssistantError(Exception):
    """Base class for every failure raised by the location services."""


class NetworkFailureError(LocationAssistantError):
    pass


class FetchTimeoutError(NetworkFailureError):
    def __init__(self, url: str, timeout_ms: int):
        super().__init__(f"Request to {url} aborted after {timeout_ms} ms")
        self.url = url
        self.timeout_ms = timeout_ms


class ParseFailureError(LocationAssistantError):
    pass


class IpInfoUnavailableError(LocationAssistantError):
    pass


class GroundingFailureError(LocationAssistantError):
    pass


class GeolocationError(LocationAssistantError):
    """Failure reported by the device geolocation capability."""

    def __init__(self, code: int, message: str = ""):
        super().__init__(message or f"Geolocation error {code}")
        self.code = code
        self.message = message


class NoPendingPositionRequestError(LocationAssistantError):
    pass


class StalePositionError(LocationAssistantError):
    pass


class RefreshInProgressError(LocationAssistantError):
    pass
