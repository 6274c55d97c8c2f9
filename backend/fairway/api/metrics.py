"""Scrape endpoint for the in-process chat and push counters."""

from fastapi import APIRouter, Response

from fairway.monitoring.registry import registry

PROMETHEUS_CONTENT_TYPE = "text/plain; version=0.0.4"

router = APIRouter(tags=["metrics"])


@router.get("/metrics", response_class=Response, include_in_schema=False)
def export_metrics() -> Response:
    return Response(
        content=registry.render(),
        media_type=PROMETHEUS_CONTENT_TYPE,
        headers={"Cache-Control": "no-store"},
    )
