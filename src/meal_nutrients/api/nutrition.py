"""Nutrition resolution endpoints."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from meal_nutrients.domain.errors import (
    CredentialExhausted,
    InvalidBarcode,
    NutritionPipelineError,
    UpstreamFatal,
)
from meal_nutrients.services.pipeline import NutritionRequest

if TYPE_CHECKING:
    from meal_nutrients.containers import AppContainer

router = APIRouter(prefix="/nutrition", tags=["nutrition"])

_logger = logging.getLogger(__name__)


@router.post("")
async def resolve_nutrition(
    body: NutritionRequest, request: Request
) -> dict[str, object]:
    """Resolve concepts, ingredients or a barcode into a per-100 g profile."""
    container: AppContainer = request.app.state.container
    try:
        result = await container.pipeline.resolve(body)
    except NutritionPipelineError as exc:
        raise _http_error(exc) from exc
    return result.to_dict()


@router.post("/image")
async def resolve_image(request: Request) -> dict[str, object]:
    """Recognize a raw image body and resolve its nutrients."""
    container: AppContainer = request.app.state.container
    image_bytes = await request.body()
    if not image_bytes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Empty image body"
        )
    try:
        result = await container.pipeline.resolve_image(image_bytes)
    except NutritionPipelineError as exc:
        raise _http_error(exc) from exc
    return result.to_dict()


def _http_error(exc: NutritionPipelineError) -> HTTPException:
    """Translate pipeline failures into HTTP responses."""
    if isinstance(exc, InvalidBarcode):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, CredentialExhausted):
        _logger.warning("Upstream unavailable: %s", exc)
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upstream unavailable",
        )
    if isinstance(exc, UpstreamFatal):
        _logger.warning("Upstream failed: %s", exc)
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"upstream_status": exc.status_code, "upstream_body": exc.body},
        )
    _logger.exception("Nutrition pipeline failed")
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
