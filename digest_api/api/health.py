"""Health probe and API description routes (no auth)."""

import yaml
from fastapi import APIRouter, Request
from fastapi.responses import Response

from digest_api.schemas.schemas import HealthResponse

router = APIRouter(tags=["System"])


@router.get(
    "/healthz",
    response_model=HealthResponse,
    summary="Health probe",
    description="Liveness probe; does not touch the database or broker.",
)
async def healthz():
    return HealthResponse(ok=True)


@router.get("/openapi.yaml", include_in_schema=False)
async def openapi_yaml(request: Request):
    """The OpenAPI document rendered as YAML."""
    content = yaml.safe_dump(request.app.openapi(), sort_keys=False, allow_unicode=True)
    return Response(content=content, media_type="application/yaml")
