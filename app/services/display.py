from app.schemas.display import LocationDisplay
from app.schemas.location import LocationSnapshot, LocationStatus

ADDRESS_ATTRIBUTION = "Powered by Google Maps"
PLACEHOLDER = "--"


def _address_fallback(snapshot: LocationSnapshot) -> str:
    if snapshot.status == LocationStatus.DENIED:
        return "无法获取位置权限"
    if snapshot.error_message:
        return "位置获取异常"
    return "正在等待 GPS 信号..."


def build_display(snapshot: LocationSnapshot) -> LocationDisplay:
    """Apply the placeholder rules of the location view to a snapshot."""
    is_loading = snapshot.status == LocationStatus.LOADING

    address_text = None
    address_attribution = None
    if not is_loading:
        if snapshot.address is not None:
            address_text = snapshot.address.formatted_address
            address_attribution = ADDRESS_ATTRIBUTION
        else:
            address_text = _address_fallback(snapshot)

    coordinates = f"{PLACEHOLDER}, {PLACEHOLDER}"
    if snapshot.gps is not None:
        coordinates = f"{snapshot.gps.latitude:.6f}, {snapshot.gps.longitude:.6f}"

    ip_info = snapshot.ip_info
    return LocationDisplay(
        banner=snapshot.error_message or None,
        is_loading=is_loading,
        is_success=snapshot.status == LocationStatus.SUCCESS,
        address_text=address_text,
        address_attribution=address_attribution,
        coordinates=coordinates,
        ip=ip_info.ip if ip_info else "查询中...",
        org=(ip_info.org or PLACEHOLDER) if ip_info else PLACEHOLDER,
        ip_location=(
            f"{ip_info.city} {ip_info.region} {ip_info.country}" if ip_info else PLACEHOLDER
        ),
        refresh_label="正在刷新..." if is_loading else "刷新位置信息",
        refresh_enabled=not is_loading,
    )
