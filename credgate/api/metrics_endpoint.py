"""Prometheus scrape endpoint (text exposition format, not JSON).

Left unauthenticated for the scraper; restrict it at the network edge in
production, since ledger result-code rates reveal who is being refused.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
