"""Constants for the reservation REST backend."""

RESERVATIONS_ENDPOINT = "/reservations"

IDEMPOTENCY_HEADER = "Idempotency-Key"

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "pyevcharging",
}
