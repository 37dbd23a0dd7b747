"""Application constants."""

USER_AGENT = "twd97-townships/0.3 (+batch township classification)"
COMMANDS = ("convert", "classify")
DEFAULT_REGION = "changhua"
UNKNOWN_TOWNSHIP = "Unknown"
MAPS_URL_TEMPLATE = "https://www.google.com/maps?q={lat},{lng}"
NOTE_COORDINATE_OUTLIER = "COORDINATE_OUTLIER"
EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20
JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "chunk",
    "event",
    "status",
    "attempt",
    "duration_ms",
    "rows_in",
    "rows_out",
    "error_code",
    "message",
)
