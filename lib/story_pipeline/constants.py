"""
Constants used throughout the story pipeline.

Centralizes magic numbers and fixed strings so the crawl, ingest and
export stages agree on them.
"""

# =============================================================================
# Crawl
# =============================================================================

# Concurrent crawl workers (each with its own browser)
DEFAULT_WORKER_COUNT = 4

# Pause after every target inside one worker (2 seconds)
DEFAULT_REQUEST_DELAY_MS = 2000

# Navigation timeout for a single page load (45 seconds)
DEFAULT_NAVIGATION_TIMEOUT_MS = 45000

# Grace period before re-checking a bot challenge page (6 seconds)
DEFAULT_CHALLENGE_WAIT_MS = 6000

# Page title served by the anti-bot interstitial
BOT_CHALLENGE_TITLE = "Just a moment..."

# Request types aborted by the browser session
BLOCKED_RESOURCE_TYPES = frozenset({"image", "stylesheet", "font", "media"})

ACCEPT_LANGUAGE = "en-US,en;q=0.9"

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)

BROWSER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-first-run",
    "--window-size=1920,1080",
]

RAW_DOCUMENT_SUFFIX = ".html"


# =============================================================================
# Extraction
# =============================================================================

DEFAULT_CONTENT_SELECTOR = "section.story-content"

# Presentation-only elements stripped from the content region
PRESENTATION_TAGS = ["div", "script", "br"]

UNCATEGORIZED_GENRE = "uncategorized"

DEFAULT_AUTHOR = "ghost"

WORDS_PER_MINUTE = 200


# =============================================================================
# Ingestion
# =============================================================================

MAX_SLUG_LENGTH = 150

# Used when a candidate slug is empty after truncation
EMPTY_SLUG_FALLBACK = "untitled"


# =============================================================================
# Export
# =============================================================================

# Stories per index page
EXPORT_PAGE_SIZE = 70

EXPORT_AUTHOR_FALLBACK = "Anonymous"
EXPORT_RATING_PLACEHOLDER = "N/A"
EXPORT_READS_PLACEHOLDER = 0

LATEST_NAMESPACE = "latest"
GENRES_NAMESPACE = "genres"
STORIES_NAMESPACE = "stories"
