"""Internal constants shared across the library."""

BASE_URL = "https://node.goflash.com"
USER_AGENT = "okhttp/3.12.1"

LOGIN_START_PATH = "/verification/phone/start"
SIGNUP_PATH = "/signup/phone"
TOKEN_REFRESH_PATH = "/login/refresh"
DEVICES_PATH = "/devices"

DEFAULT_PROVIDER = "circ"

#: Seconds between two token refreshes.
DEFAULT_TOKEN_REFRESH_INTERVAL: float = 5 * 60

#: Archive folder names carry the capture day, file names the full capture time.
FOLDER_DATE_FORMAT = "%Y-%m-%d"
ARCHIVE_SUFFIX = ".json.gz"

#: Mean earth radius used for great-circle distances.
EARTH_RADIUS_KM = 6371.0
