from fastapi import APIRouter, HTTPException, status

from app.core.exceptions import IpInfoUnavailableError
from app.schemas.location import IpInfo
from app.services.ip_info import ip_info_service

router = APIRouter()


@router.get("", response_model=IpInfo)
async def get_ip_info() -> IpInfo:
    """
    Public IP and network details of this device, from the first IP
    provider that answers.
    """
    try:
        return await ip_info_service.fetch_ip_info()
    except IpInfoUnavailableError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(e),
        ) from e
