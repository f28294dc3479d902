from fastapi import APIRouter, status

from rpckeys.schemas.health import HealthCheck

router = APIRouter()
group_tags = ["healthcheck"]


@router.get(
    "/health",
    tags=group_tags,
    summary="Perform a Health Check",
    response_description="Return HTTP Status Code 200 (OK)",
    status_code=status.HTTP_200_OK,
    response_model=HealthCheck,
)
def get_health() -> HealthCheck:
    """Liveness probe; does not touch the database."""
    return HealthCheck(status="oke")
