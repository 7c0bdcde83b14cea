"""
Constants, thresholds, and wire settings.
"""

AGENT_VERSION = "1.0.0"

# ─── Sample filter ───────────────────────────────────────────────
MAX_POSITION_ACCURACY_M = 50.0   # Fixes worse than this are dropped
MIN_DISTANCE_BEFORE_SAVE_M = 15.0  # Closer than this to the last saved point → skip

# ─── Duty cycle ──────────────────────────────────────────────────
REGION_TIMEOUT_RADIUS_M = 20.0   # Movement inside this radius counts as standing still
FOOT_IDLE_TIMEOUT_SEC = 60       # No movement for 1 min on foot → stop live updates
VEHICLE_IDLE_TIMEOUT_SEC = 300   # No movement for 5 min after driving → stop live updates
OUT_OF_VEHICLE_TIMEOUT_SEC = 180  # Slow for 3 min after last fast sample → back on foot

MOVING_SPEED_KMH = 10.0          # At or above this the anchor always moves
VEHICLE_SPEED_KMH = 30.0         # At or above this we are in a vehicle
WALKING_SPEED_KMH = 5.0          # Lower edge of the leave-vehicle band

# ─── Buffer / upload ─────────────────────────────────────────────
BUFFER_SIZE_CHOICES = (5, 60, 120, 300, 600)
DEFAULT_MAX_BUFFER_SIZE = 300
MAX_CHUNK_SIZE = 300             # Records per POST

API_PATH = "/api/v1"
BATCH_ENDPOINT = "/gps/batch"
API_TIMEOUT_UPLOAD = 30          # Seconds per chunk

# ─── Network ─────────────────────────────────────────────────────
CONNECTIVITY_CHECK_SEC = 15      # How often the monitor re-probes the server
CONNECT_TIMEOUT_SEC = 4

# ─── Notifications ───────────────────────────────────────────────
NOTIFICATION_TITLE = "waypointdb"
