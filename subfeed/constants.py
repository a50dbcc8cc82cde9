"""Application constants - centralized configuration values."""

from datetime import UTC, datetime, timedelta

# =============================================================================
# Scraping
# =============================================================================
VIDEOS_PER_CHANNEL_SCRAPE_LIMIT = 10  # New videos enriched per channel per run
NEW_UNREAD_THRESHOLD = timedelta(days=7)  # Older new videos are imported as read
OLD_VIDEO_ERROR_THRESHOLD = datetime(2004, 1, 1, tzinfo=UTC)  # Earlier dates are implausible

YOUTUBE_PAGE_SIZE = 100
PEERTUBE_PAGE_SIZE = 100
ODYSEE_PAGE_SIZE = 50

# =============================================================================
# SponsorBlock
# =============================================================================
SPONSORBLOCK_HASH_PREFIX_LENGTH = 4
SPONSORBLOCK_CATEGORIES = ("sponsor", "selfpromo", "exclusive_access")
SPONSORBLOCK_MAX_RETRIES = 5
SPONSORBLOCK_RETRY_DELAY = 5.0  # seconds
SPONSORBLOCK_RECHECK_WINDOW = timedelta(hours=24)

# =============================================================================
# API Timeouts (in seconds)
# =============================================================================
API_TIMEOUT_EXTERNAL = 30.0
HTTPX_TIMEOUT = 15.0

# =============================================================================
# Background Task Intervals (in seconds)
# =============================================================================
FEED_UPDATE_INTERVAL_MIN = 15 * 60
FEED_UPDATE_INTERVAL_MAX = 20 * 60
SHUTDOWN_GRACE_PERIOD = 10.0

# =============================================================================
# Feed API
# =============================================================================
FEED_DEFAULT_LIMIT = 25
FEED_MAX_LIMIT = 1000
SEARCH_MIN_SCORE = 0.6

# =============================================================================
# Notifications
# =============================================================================
DISCORD_MESSAGE_LIMIT = 2000

# =============================================================================
# External API URLs
# =============================================================================
ODYSEE_API_URL = "https://api.na-backend.odysee.com/api/v1/proxy"
