"""
ISS Position Exporter.

Polls a live ISS position API and republishes latitude, longitude and
altitude as Prometheus gauges.

Usage:
    python -m iss_exporter

Environment variables:
    POSITION_API_URL            Position API endpoint (wheretheiss.at by default)
    POSITION_UPDATE_FREQUENCY   Poll interval in milliseconds
    POSITION_REQUEST_TIMEOUT    Per-request timeout in seconds
    METRICS_PREFIX              Prefix for the gauge names, e.g. "iss_"
"""
