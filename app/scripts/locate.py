"""
Run one location load cycle from the command line and print the result.

    python -m app.scripts.locate 31.2304 121.4737

Without coordinates only the IP lookup runs and the position is reported as
unavailable.
"""

import asyncio
import sys

from app.schemas.location import GpsCoordinates
from app.services.display import build_display
from app.services.geolocation import StaticPositionProvider
from app.services.grounding import address_grounding_service
from app.services.ip_info import ip_info_service
from app.services.location import LocationOrchestrator


async def locate(coords: GpsCoordinates | None = None) -> None:
    geolocation = None
    if coords is not None:
        geolocation = StaticPositionProvider(coords.latitude, coords.longitude, coords.accuracy)

    orchestrator = LocationOrchestrator(
        ip_service=ip_info_service,
        grounding=address_grounding_service,
        geolocation=geolocation,
    )
    await orchestrator.load()
    await orchestrator.wait_idle()
    display = build_display(orchestrator.snapshot())
    await orchestrator.close()

    print("=" * 60)
    print("当前 GPS 所在位置")
    print("=" * 60)
    if display.banner:
        print(f"! {display.banner}")
    print(display.address_text or "")
    if display.address_attribution:
        print(f"  ({display.address_attribution})")
    print(f"{display.datum}: {display.coordinates}")

    print("\n" + "=" * 60)
    print("网络 IP 详情")
    print("=" * 60)
    print(f"公网 IP:   {display.ip}")
    print(f"运营商:    {display.org}")
    print(f"IP 归属地: {display.ip_location}")


def parse_args(argv: list[str]) -> GpsCoordinates | None:
    if not argv:
        return None
    if len(argv) != 2:
        raise SystemExit("usage: python -m app.scripts.locate [LATITUDE LONGITUDE]")
    return GpsCoordinates(latitude=float(argv[0]), longitude=float(argv[1]), timestamp=0)


if __name__ == "__main__":
    asyncio.run(locate(parse_args(sys.argv[1:])))
