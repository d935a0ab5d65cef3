"""Internal constants shared across the library."""

BASE_URL = "http://localhost:3000"
API_VERSION = "v1"
USER_AGENT = "sushisync/0"

RESOURCE = "sushi"

# ------------------------------------------------------------------
# Tunables (milliseconds / seconds)
# ------------------------------------------------------------------

SEARCH_DEBOUNCE_MS = 2000
STALE_AFTER_SECONDS = 3 * 60
GC_IDLE_SECONDS = 5 * 60
SWEEP_INTERVAL_SECONDS = 60
RETRY_COUNT = 1
RETRY_DELAY_SECONDS = 1.0
REQUEST_TIMEOUT_SECONDS = 30.0

# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

SUSHI_LIST_PATH = "/sushi"
SUSHI_CREATE_PATH = "/sushi"


def sushi_item_path(sushi_id: str) -> str:
    """Path for detail, update and delete of a single item."""
    return f"/sushi/{sushi_id}"


# ------------------------------------------------------------------
# User-facing messages
# ------------------------------------------------------------------

TITLE = "Sushi"
ERROR_GENERIC = "Something went wrong. Please try again."
CONFIRM_DELETE_TITLE = "Confirm Delete"


def msg_created(title: str) -> str:
    return f"{title} created successfully."


def msg_deleted(title: str) -> str:
    return f"{title} deleted successfully."


def msg_add(title: str) -> str:
    return f"Add {title}"


def msg_confirm_delete(title: str) -> str:
    return f"Are you sure you want to delete this {title}?"


# Overlay content handles
SUSHI_FORM_HANDLE = "sushi-form"
SUSHI_DELETE_HANDLE_PREFIX = "sushi-delete:"
