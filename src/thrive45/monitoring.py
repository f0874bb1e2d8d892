"""Monitoring configuration for the progress engine."""
from prometheus_client import Counter, Gauge, start_http_server

# Challenge lifecycle metrics
challenges_started = Counter(
    "thrive45_challenges_started_total",
    "Total number of challenges started",
)

challenge_resets = Counter(
    "thrive45_challenge_resets_total",
    "Total number of challenge resets",
    ["reason"],
)

progress_saves = Counter(
    "thrive45_progress_saves_total",
    "Total number of daily progress saves",
    ["completed"],
)

streak_days = Gauge(
    "thrive45_streak_days",
    "Current streak of fully completed days",
)

# Synchronisation metrics
remote_errors = Counter(
    "thrive45_remote_errors_total",
    "Total number of failed remote record store operations",
    ["operation"],
)

reconciliations = Counter(
    "thrive45_reconciliations_total",
    "Total number of reconciliation passes by outcome",
    ["outcome"],
)


def start_monitoring(port: int = 9090) -> None:
    """Start the Prometheus metrics server."""
    start_http_server(port)
