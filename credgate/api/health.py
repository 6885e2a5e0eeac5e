"""Health and readiness endpoints.

  /health  liveness: is the process up?  Always 200; the body reports
           whether the ledger answers, as "ok" or "degraded".
  /ready   readiness: can this instance serve traffic?  503 while the
           ledger is unreachable, so the load balancer stops routing
           here without the orchestrator restarting the container.

Every useful request touches the ledger, so the ledger is the one
critical dependency.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Response

from credgate.ledger.connection import ledger_client
from credgate.ledger.memory import InMemoryLedger

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


async def _ledger_check() -> str:
    if isinstance(ledger_client, InMemoryLedger):
        return "in_memory"
    try:
        return "ok" if await ledger_client.ping() else "degraded"
    except Exception:
        logger.exception("Ledger health check failed")
        return "degraded"


@router.get("/health")
async def health() -> dict:
    ledger = await _ledger_check()
    return {
        "status": "degraded" if ledger == "degraded" else "ok",
        "checks": {"ledger": ledger},
    }


@router.get("/ready")
async def ready() -> Response:
    if await _ledger_check() == "degraded":
        return Response(status_code=503)
    return Response(status_code=200)
