import logging

from openai import AsyncOpenAI, OpenAIError

from app.core.config import settings
from app.core.exceptions import GroundingFailureError, LocationAssistantError
from app.schemas.grounding import GroundedPlace, GroundingResult
from app.services.geocoding import GeocodingService, geocoding_service

logger = logging.getLogger(__name__)

GROUNDING_ROLE = (
    "You are a location assistant. Answer only with the street address of the given "
    "coordinates, using the map results provided as ground truth."
)


def build_prompt(latitude: float, longitude: float, language: str) -> str:
    # coordinates are WGS84 on both sides, no datum conversion needed
    return (
        f"Where is latitude {latitude}, longitude {longitude}? "
        f"Provide the precise street address in {language}."
    )


def _format_places(places: list[GroundedPlace]) -> str:
    lines = []
    for i, place in enumerate(places, start=1):
        kinds = ", ".join(place.types) if place.types else "unknown"
        lines.append(f"{i}. {place.formatted_address} ({kinds})")
    return "\n".join(lines)


class AddressGroundingService:
    """
    Turns a coordinate pair into a human readable address.

    Candidate places are retrieved from Google Maps first; when an OpenAI key
    is configured the model writes the final answer grounded on them,
    otherwise the best map result is used verbatim.
    """

    _instance: "AddressGroundingService" = None

    def __init__(
        self,
        geocoder: GeocodingService | None = None,
        client: AsyncOpenAI | None = None,
        model: str | None = None,
        timeout_ms: int | None = None,
    ):
        if AddressGroundingService._instance is not None and geocoder is None:
            raise Exception("This class is a singleton!")
        self.geocoder = geocoder or geocoding_service
        self.timeout_ms = timeout_ms or settings.GROUNDING_TIMEOUT_MS
        if client is None and settings.OPENAI_API_KEY:
            client = AsyncOpenAI(
                api_key=settings.OPENAI_API_KEY, timeout=self.timeout_ms / 1000, max_retries=0
            )
        self.client = client
        self.model = model or settings.AI_MODEL

    @classmethod
    def get_instance(cls) -> "AddressGroundingService":
        if AddressGroundingService._instance is None:
            AddressGroundingService._instance = cls()
        return AddressGroundingService._instance

    async def ground(
        self, latitude: float, longitude: float, language: str | None = None
    ) -> GroundingResult:
        language = language or settings.ADDRESS_LANGUAGE
        if not self.geocoder.configured and self.client is None:
            raise GroundingFailureError("No address grounding backend configured")

        places: list[GroundedPlace] = []
        if self.geocoder.configured:
            try:
                places = await self.geocoder.reverse_geocode(latitude, longitude)
            except LocationAssistantError as e:
                raise GroundingFailureError(f"Map retrieval failed: {e}") from e

        if self.client is None:
            text = places[0].formatted_address if places else None
            return GroundingResult(text=text, places=places)

        text = await self.generate_text(
            GROUNDING_ROLE, self._grounded_prompt(latitude, longitude, language, places)
        )
        return GroundingResult(text=text, places=places)

    def _grounded_prompt(
        self, latitude: float, longitude: float, language: str, places: list[GroundedPlace]
    ) -> str:
        prompt = build_prompt(latitude, longitude, language)
        if places:
            prompt += f"\n\nGoogle Maps results for these coordinates:\n{_format_places(places)}"
        return prompt

    async def generate_text(self, role: str, prompt: str) -> str | None:
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                timeout=self.timeout_ms / 1000,
                messages=[
                    {"role": "system", "content": role},
                    {"role": "user", "content": prompt},
                ],
            )
        except OpenAIError as e:
            logger.error(f"Grounding model request failed: {e}")
            raise GroundingFailureError(f"Grounding model request failed: {e}") from e
        if not response.choices:
            return None
        return response.choices[0].message.content


address_grounding_service = AddressGroundingService.get_instance()
