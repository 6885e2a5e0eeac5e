"""Request IDs: echoed or generated, on every response, and on log lines."""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    uuid.UUID(resp.headers["x-request-id"])


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    resp = client.get("/health", headers={"X-Request-ID": "trace-abc-123"})
    assert resp.headers.get("x-request-id") == "trace-abc-123"


def test_request_id_present_on_error_responses(client: TestClient, issuer) -> None:
    # No token -> 401
    resp = client.get(f"/v1/ledger/{issuer.address}/credentials")
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="credgate.middleware.request_context"):
        client.get("/health", headers={"X-Request-ID": "summary-1"})

    (record,) = [
        r for r in caplog.records if r.name == "credgate.middleware.request_context"
    ]
    assert record.getMessage().startswith("GET /health -> 200")
    assert record.request_id == "summary-1"
    assert record.status_code == 200
