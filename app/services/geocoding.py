import logging

from httpx import AsyncClient
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import GroundingFailureError, LocationAssistantError, ParseFailureError
from app.schemas.grounding import GroundedPlace
from app.utils.fetch import fetch_with_timeout


class GeocodingService:
    _instance: "GeocodingService" = None

    def __init__(self, api_key: str | None = None, timeout_ms: int | None = None):
        if GeocodingService._instance is not None and api_key is None:
            raise Exception("This class is a singleton!")
        self.geocode_url = "https://maps.googleapis.com/maps/api/geocode/json"
        self.api_key = api_key or settings.GOOGLE_MAPS_KEY
        self.timeout_ms = timeout_ms or settings.GEOCODING_TIMEOUT_MS
        self.logger = logging.getLogger(__name__)

    @classmethod
    def get_instance(cls) -> "GeocodingService":
        if GeocodingService._instance is None:
            GeocodingService._instance = cls()
        return GeocodingService._instance

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def reverse_geocode(
        self,
        latitude: float,
        longitude: float,
        language: str | None = None,
        client: AsyncClient | None = None,
    ) -> list[GroundedPlace]:
        """
        Look up the places Google Maps knows at a coordinate pair.
        Results come back best match first.
        """
        if not self.configured:
            raise GroundingFailureError("Geocoding service not configured")

        params = {
            "latlng": f"{latitude},{longitude}",
            "language": language or settings.GEOCODING_LANGUAGE,
            "key": self.api_key,
        }
        try:
            r = await fetch_with_timeout(
                self.geocode_url, timeout=self.timeout_ms, client=client, params=params
            )
        except LocationAssistantError as e:
            raise GroundingFailureError(f"Geocoding request failed: {e}") from e

        if r.status_code != 200:
            self.logger.error(
                "Reverse geocoding upstream HTTP error %s for (%s, %s)",
                r.status_code,
                latitude,
                longitude,
            )
            raise GroundingFailureError(
                f"Geocoding service returned error status {r.status_code}"
            )

        try:
            data = r.json()
        except ValueError as e:
            raise ParseFailureError(f"Invalid response from geocoding service: {e}") from e

        if not isinstance(data, dict):
            raise ParseFailureError(
                f"Geocoding service returned {type(data).__name__}, expected object"
            )

        status_code = data.get("status")
        if status_code == "ZERO_RESULTS":
            return []
        if status_code != "OK":
            error_message = data.get("error_message")
            self.logger.warning(
                "Reverse geocoding failed for (%s, %s) with status '%s' and message '%s'",
                latitude,
                longitude,
                status_code,
                error_message,
            )
            detail = f"Geocoding failed: {status_code}" + (
                f" - {error_message}" if error_message else ""
            )
            raise GroundingFailureError(detail)

        places = []
        try:
            for result in data.get("results") or []:
                formatted_address = result.get("formatted_address")
                if not formatted_address:
                    continue
                places.append(
                    GroundedPlace(
                        formatted_address=formatted_address,
                        place_id=result.get("place_id"),
                        types=result.get("types") or [],
                    )
                )
        except (AttributeError, TypeError, ValidationError) as e:
            raise ParseFailureError(
                f"Unexpected response format from geocoding service: {e}"
            ) from e
        return places


geocoding_service = GeocodingService.get_instance()
