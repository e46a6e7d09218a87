"""Prometheus metrics instrumentation for the signaling coordinator.

Metrics are exposed via HTTP on METRICS_PORT when METRICS_ENABLED is set.

Metrics exported:
- signaling_events_total: Counter of inbound events by type and outcome
- signaling_active_sessions: Gauge of live call sessions
- signaling_registered_identities: Gauge of identities with a live connection
- media_relay_calls_total: Counter of control-plane calls by command and outcome

Usage:
    from callsignal.services.metrics import events_processed

    events_processed.labels(event='call', outcome='routed').inc()
"""

from prometheus_client import Counter, Gauge, start_http_server
import logging

logger = logging.getLogger(__name__)

# outcome: routed, dropped, rejected, invalid
events_processed = Counter(
    'signaling_events_total',
    'Inbound signaling events processed',
    labelnames=['event', 'outcome']
)

active_sessions_gauge = Gauge(
    'signaling_active_sessions',
    'Number of live call sessions'
)

registered_identities_gauge = Gauge(
    'signaling_registered_identities',
    'Number of identities with a live connection'
)

# outcome: ok, error
relay_calls = Counter(
    'media_relay_calls_total',
    'Control-plane calls issued to the media relay',
    labelnames=['command', 'outcome']
)


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except Exception as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
