"""Global constants for the pickupboard application."""

# Collections and documents
APP_STATE_COLLECTION = "appState"
EVENTS_DOCUMENT = "events"
USERS_COLLECTION = "users"
CHALLENGES_COLLECTION = "challenges"

# Field of the shared events document
EVENTS_BY_SPORT_FIELD = "eventsBySport"

# Profile token fields
GOOGLE_ACCESS_TOKEN = "googleAccessToken"  # nosec B105
GOOGLE_REFRESH_TOKEN = "googleRefreshToken"  # nosec B105
GOOGLE_TOKEN_EXPIRY = "googleTokenExpiry"  # nosec B105

# Event defaults
DEFAULT_MIN_PLAYERS = 1
DEFAULT_MAX_PLAYERS = 6
CUSTOM_TIME_LABEL = "Custom time"

# Background work
EXPIRY_SWEEP_SECONDS = 60

# Calendar
CALENDAR_EVENT_DURATION_MINUTES = 30
DEFAULT_TIME_ZONE = "America/New_York"
GOOGLE_OAUTH_TOKEN_URL = "https://oauth2.googleapis.com/token"  # nosec B105
GOOGLE_CALENDAR_API_BASE_URL = "https://www.googleapis.com/calendar/v3"
CALENDAR_ID = "primary"
CALENDAR_HTTP_TIMEOUT = 30.0

# Challenge statuses
CHALLENGE_PENDING = "pending"
CHALLENGE_ACCEPTED = "accepted"
CHALLENGE_DISMISSED = "dismissed"
