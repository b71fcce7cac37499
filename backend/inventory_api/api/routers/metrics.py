"""Prometheus scrape endpoint."""

from fastapi import APIRouter, Depends, Response

from inventory_api.api.dependencies.services import get_metrics
from inventory_api.services.metrics import NullMetrics

router = APIRouter(tags=["metrics"])


@router.get("/metrics", summary="Prometheus metrics", include_in_schema=False)
def metrics(sink: NullMetrics = Depends(get_metrics)) -> Response:
    return Response(content=sink.render(), media_type=sink.content_type)
