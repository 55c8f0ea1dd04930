from pydantic import BaseModel


class LocationDisplay(BaseModel):
    """Render-ready view of a location snapshot, placeholders already applied"""

    banner: str | None = None
    is_loading: bool = False
    is_success: bool = False

    address_text: str | None = None
    address_attribution: str | None = None

    datum: str = "WGS84"
    coordinates: str = "--, --"

    ip: str
    org: str
    ip_location: str

    refresh_label: str
    refresh_enabled: bool
