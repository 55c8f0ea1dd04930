from conftest import SHANGHAI, SHANGHAI_ADDRESS

from app.schemas.location import AddressInfo, IpInfo, LocationSnapshot, LocationStatus
from app.services.display import build_display


def test_loading_view_hides_address_and_disables_refresh():
    display = build_display(LocationSnapshot(status=LocationStatus.LOADING))

    assert display.is_loading
    assert display.address_text is None
    assert display.refresh_label == "正在刷新..."
    assert not display.refresh_enabled
    assert display.ip == "查询中..."
    assert display.org == "--"
    assert display.ip_location == "--"
    assert display.coordinates == "--, --"


def test_success_view_shows_address_and_coordinates(ip_info):
    snapshot = LocationSnapshot(
        status=LocationStatus.SUCCESS,
        ip_info=ip_info,
        gps=SHANGHAI,
        address=AddressInfo(formatted_address=SHANGHAI_ADDRESS, poi_name="Google Maps Data"),
    )

    display = build_display(snapshot)

    assert display.is_success
    assert display.banner is None
    assert display.address_text == SHANGHAI_ADDRESS
    assert display.address_attribution == "Powered by Google Maps"
    assert display.coordinates == "31.230400, 121.473700"
    assert display.datum == "WGS84"
    assert display.ip == "203.0.113.7"
    assert display.org == "China Telecom"
    assert display.ip_location == "Shanghai Shanghai China"
    assert display.refresh_label == "刷新位置信息"
    assert display.refresh_enabled


def test_denied_view_shows_banner_and_permission_placeholder():
    snapshot = LocationSnapshot(
        status=LocationStatus.DENIED, error_message="请允许浏览器获取您的位置权限"
    )

    display = build_display(snapshot)

    assert display.banner == "请允许浏览器获取您的位置权限"
    assert display.address_text == "无法获取位置权限"
    assert display.address_attribution is None


def test_error_view_shows_generic_placeholder():
    snapshot = LocationSnapshot(status=LocationStatus.ERROR, error_message="您的浏览器不支持定位功能")

    assert build_display(snapshot).address_text == "位置获取异常"


def test_idle_view_waits_for_signal():
    assert build_display(LocationSnapshot(status=LocationStatus.IDLE)).address_text == (
        "正在等待 GPS 信号..."
    )


def test_missing_org_renders_as_dash():
    snapshot = LocationSnapshot(status=LocationStatus.SUCCESS, ip_info=IpInfo(ip="203.0.113.7"))

    display = build_display(snapshot)

    assert display.ip == "203.0.113.7"
    assert display.org == "--"
