import logging
from typing import Any

from httpx import AsyncClient

from app.core.config import settings
from app.core.exceptions import (
    IpInfoUnavailableError,
    LocationAssistantError,
    NetworkFailureError,
    ParseFailureError,
)
from app.schemas.location import IpInfo
from app.utils.fetch import fetch_with_timeout

logger = logging.getLogger(__name__)

IP_INFO_UNAVAILABLE_MESSAGE = "无法获取网络信息"


def _to_camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _pick(data: dict[str, Any], *keys: str) -> str:
    # providers disagree on snake_case vs camelCase for the same field
    for key in keys:
        for candidate in (key, _to_camel(key)):
            value = data.get(candidate)
            if value not in (None, ""):
                return str(value)
    return ""


class IpInfoProvider:
    """One step of the cascade: fetch a provider's payload and normalize it."""

    name: str = ""
    url: str = ""

    def __init__(self, timeout_ms: int):
        self.timeout_ms = timeout_ms

    async def fetch(self, client: AsyncClient | None = None) -> IpInfo:
        response = await fetch_with_timeout(self.url, timeout=self.timeout_ms, client=client)
        if not response.is_success:
            raise NetworkFailureError(f"{self.name} returned HTTP {response.status_code}")
        try:
            data = response.json()
        except ValueError as e:
            raise ParseFailureError(f"{self.name} returned a non-JSON body") from e
        if not isinstance(data, dict):
            raise ParseFailureError(f"{self.name} returned {type(data).__name__}, expected object")
        if data.get("error"):
            raise NetworkFailureError(
                f"{self.name} reported an error: {data.get('reason') or data.get('error')}"
            )
        return self.normalize(data)

    def normalize(self, data: dict[str, Any]) -> IpInfo:
        raise NotImplementedError


class DbIpProvider(IpInfoProvider):
    name = "db-ip"
    url = "https://api.db-ip.com/v2/free/self"

    def normalize(self, data: dict[str, Any]) -> IpInfo:
        return IpInfo(
            ip=_pick(data, "ip_address") or "未知",
            city=_pick(data, "city"),
            region=_pick(data, "region_name"),
            country=_pick(data, "country_name"),
            # the free tier does not expose the ISP
            org="Unknown Provider",
        )


class IpapiProvider(IpInfoProvider):
    name = "ipapi"
    url = "https://ipapi.co/json/"

    def normalize(self, data: dict[str, Any]) -> IpInfo:
        return IpInfo(
            ip=_pick(data, "ip"),
            city=_pick(data, "city"),
            region=_pick(data, "region"),
            country=_pick(data, "country_name"),
            org=_pick(data, "org") or _pick(data, "asn"),
        )


class IpifyProvider(IpInfoProvider):
    name = "ipify"
    url = "https://api.ipify.org?format=json"

    def normalize(self, data: dict[str, Any]) -> IpInfo:
        ip = _pick(data, "ip")
        if not ip:
            raise ParseFailureError("ipify payload carries no ip")
        return IpInfo(ip=ip)


PROVIDERS: dict[str, type[IpInfoProvider]] = {
    DbIpProvider.name: DbIpProvider,
    IpapiProvider.name: IpapiProvider,
    IpifyProvider.name: IpifyProvider,
}


def build_providers(
    order: list[str],
    timeout_ms: int = 5000,
    ip_only_timeout_ms: int = 3000,
) -> list[IpInfoProvider]:
    providers = []
    for name in order:
        provider_cls = PROVIDERS.get(name)
        if provider_cls is None:
            raise ValueError(f"Unknown IP provider '{name}', expected one of {sorted(PROVIDERS)}")
        timeout = ip_only_timeout_ms if provider_cls is IpifyProvider else timeout_ms
        providers.append(provider_cls(timeout))
    return providers


class IpInfoService:
    _instance: "IpInfoService" = None

    def __init__(self, providers: list[IpInfoProvider] | None = None):
        if providers is None and IpInfoService._instance is not None:
            raise Exception("This class is a singleton!")
        if providers is None:
            providers = build_providers(
                settings.ip_providers,
                timeout_ms=settings.IP_FETCH_TIMEOUT_MS,
                ip_only_timeout_ms=settings.IP_ONLY_FETCH_TIMEOUT_MS,
            )
        self.providers = providers

    @classmethod
    def get_instance(cls) -> "IpInfoService":
        if IpInfoService._instance is None:
            IpInfoService._instance = cls()
        return IpInfoService._instance

    async def fetch_ip_info(self, client: AsyncClient | None = None) -> IpInfo:
        """
        Walk the providers in order and return the first normalized record.

        Every provider gets its own timeout window and a single attempt. A
        failing step is logged and skipped; only running out of providers is
        reported to the caller.
        """
        for provider in self.providers:
            try:
                ip_info = await provider.fetch(client)
            except LocationAssistantError as e:
                logger.warning("IP provider %s failed, trying next: %s", provider.name, e)
                continue
            logger.info("IP info resolved via %s", provider.name)
            return ip_info

        logger.error("All %d IP providers failed", len(self.providers))
        raise IpInfoUnavailableError(IP_INFO_UNAVAILABLE_MESSAGE)


ip_info_service = IpInfoService.get_instance()
