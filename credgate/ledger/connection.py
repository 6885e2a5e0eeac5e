"""Ledger connection management.

When LEDGER_URL is configured we talk to a real rippled node through
XrplLedgerClient; when it is unset (local dev, tests) everything runs
against InMemoryLedger and no network is needed.

The choice is made once, here, from Settings.  The managers never see
the difference: they receive a LedgerClient through their constructors.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from credgate.core.config import SETTINGS, Settings
from credgate.ledger.client import LedgerClient
from credgate.ledger.memory import InMemoryLedger
from credgate.ledger.xrpl_client import XrplLedgerClient

logger = logging.getLogger(__name__)


def build_ledger_client(settings: Settings) -> LedgerClient:
    if settings.ledger_url:
        return XrplLedgerClient(settings.ledger_url, timeout=settings.ledger_timeout)
    return InMemoryLedger()


ledger_client: LedgerClient = build_ledger_client(SETTINGS)


@asynccontextmanager
async def lifespan_ledger(client: LedgerClient | None = None):
    """Open the ledger connection on startup, close it on shutdown.

    A node that is down at startup does not stop the app: /ready reports
    it and requests fail with 503 until it comes back.
    """
    client = client if client is not None else ledger_client

    if not isinstance(client, XrplLedgerClient):
        logger.info("No LEDGER_URL configured, using the in-memory ledger")
        yield
        return

    try:
        await client.open()
        logger.info("Ledger connected: %s", client.url)
    except Exception:
        logger.exception("Ledger connection failed on startup")

    try:
        yield
    finally:
        await client.close()
        logger.info("Ledger connection closed")
