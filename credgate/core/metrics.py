"""Prometheus metrics for credgate.

One inventory of everything the service measures.  Modules import the
metric they own and increment it at the point of action.

  COUNTER    only goes up; rate() turns it into "per second"
  GAUGE      goes up and down; a snapshot (in-flight requests)
  HISTOGRAM  bucketed observations; histogram_quantile() gives p95/p99

LEDGER-FACING METRICS
-----------------------
Ledger round-trips dominate request latency here, and the interesting
failure signal is the result code, not the HTTP status.  So:

  ledger_submissions_total{transaction_type, result}
      result is the raw code (tesSUCCESS, tecNO_PERMISSION, ...) or
      "unavailable" when the ledger could not be reached.  A rising
      tecNO_PERMISSION rate on Payment means senders lack credentials;
      a rising "unavailable" rate means the node is the problem.

  authorization_decisions_total{decision, reason}
      What the pre-flight check decided and why.  Compare with
      payments_total to see whether pre-flight and the ledger agree.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Reads are one ledger query; writes wait for a validated ledger
    # (3-5s on mainnet), so the upper buckets matter here.
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Ledger metrics
# ---------------------------------------------------------------------------

LEDGER_SUBMISSIONS = Counter(
    "ledger_submissions_total",
    "Transactions submitted to the ledger by type and result code",
    ["transaction_type", "result"],
)

LEDGER_QUERIES = Counter(
    "ledger_queries_total",
    "Ledger object queries by object type",
    ["object_type"],  # "credential" or "deposit_preauth"
)

LEDGER_DECODE_FAILURES = Counter(
    "ledger_decode_failures_total",
    "Ledger entries skipped because they could not be decoded",
    ["object_type"],
)

# ---------------------------------------------------------------------------
# Domain metrics
# ---------------------------------------------------------------------------

AUTHORIZATION_DECISIONS = Counter(
    "authorization_decisions_total",
    "Pre-flight deposit authorization decisions",
    ["decision", "reason"],
)

PAYMENTS = Counter(
    "payments_total",
    "Payments by outcome",
    ["outcome"],  # "delivered", "denied", "failed"
)
