from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PROJECT_NAME: str = "Location Assistant"
    LOG_LEVEL: str = "INFO"

    GOOGLE_MAPS_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    AI_MODEL: str = "gpt-4o-mini"
    ADDRESS_LANGUAGE: str = "Chinese"
    GEOCODING_LANGUAGE: str = "zh-CN"
    GEOCODING_TIMEOUT_MS: int = 10000
    GROUNDING_TIMEOUT_MS: int = 20000

    # comma separated, tried in order
    IP_PROVIDER_ORDER: str = "db-ip,ipapi,ipify"
    IP_FETCH_TIMEOUT_MS: int = 5000
    IP_ONLY_FETCH_TIMEOUT_MS: int = 3000

    GEOLOCATION_TIMEOUT_MS: int = 15000
    DEVICE_LATITUDE: float | None = None
    DEVICE_LONGITUDE: float | None = None
    DEVICE_ACCURACY: float = 0.0

    @property
    def ip_providers(self) -> list[str]:
        return [name.strip() for name in self.IP_PROVIDER_ORDER.split(",") if name.strip()]

    class Config:
        env_file = ".env"


settings = Settings()
