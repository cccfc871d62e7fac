"""Internal constants shared across the library."""

USER_AGENT = "apexauto-python"
DEFAULT_SCHEMA = "public"

DEFAULT_VEHICLE_IMAGE = (
    "https://images.pexels.com/photos/3729464/pexels-photo-3729464.jpeg?auto=compress&cs=tinysrgb&w=800"
)

DEFAULT_STORAGE_BUCKET = "public-images"
DEFAULT_STORAGE_PREFIX = "hero-images"

# Bookkeeping columns maintained by the backend, never compared when
# deciding whether a local buffer is dirty.
SERVER_MANAGED_KEYS: frozenset[str] = frozenset({"created_at", "updated_at"})

# ------------------------------------------------------------------
# Auto-tagging thresholds
# ------------------------------------------------------------------

LUXURY_PRICE_THRESHOLD = 200_000
EXOTIC_PRICE_THRESHOLD = 300_000
NEW_MODEL_YEAR = 2022
LOW_MILEAGE_THRESHOLD = 5_000

PREMIUM_MAKES: frozenset[str] = frozenset({"BMW", "MERCEDES", "AUDI", "PORSCHE"})
SUPERCAR_MAKES: frozenset[str] = frozenset({"FERRARI", "LAMBORGHINI", "MCLAREN"})

# ------------------------------------------------------------------
# Inventory filter placeholders (select-box labels meaning "unset")
# ------------------------------------------------------------------

UNSET_FILTER_LABELS: frozenset[str] = frozenset({"", "All Makes", "Price Range", "Year", "Mileage"})

# ------------------------------------------------------------------
# Notifications
# ------------------------------------------------------------------

NOTIFICATION_HISTORY_LIMIT = 50
REQUIRED_FIELDS_MESSAGE = "Please fill in all required fields"
