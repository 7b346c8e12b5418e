"""Scheduling and estimation constants."""

from datetime import timedelta

MIN_DURATION = timedelta(minutes=5)
GRACE_PERIOD = timedelta(seconds=60)

# Advisory rate used when a station publishes no per-kWh price.
DEFAULT_PRICE_PER_KWH = 0.5

STATUS_REFRESH_INTERVAL = 5.0
DEFAULT_OPERATION_TIMEOUT = 30.0
DEFAULT_RETRY_BACKOFF = 0.5
MAX_READ_RETRIES = 1
