"""
Application Configuration and Constants
=======================================

This module contains the global configuration values and defaults used
throughout the BugBoard client. It serves as a single source of truth for:

- Backend location and endpoint paths
- Network timeouts
- UI dispatch polling
- Image upload/preview limits

Note:
    All constants use UPPER_SNAKE_CASE naming convention. Modify these values to
    change application-wide behavior without touching business logic. The
    backend URL can also be overridden at runtime through
    ``bugboard.utils.config_manager``.
"""

# ============================================================================
# APPLICATION SETTINGS
# ============================================================================

APP_NAME = "BugBoard"
GEOMETRY = "1100x700"

# ============================================================================
# BACKEND CONFIGURATION
# ============================================================================
# Base URL of the BugBoard REST backend. Every endpoint path below is appended
# to it verbatim.

DEFAULT_API_BASE_URL = "http://localhost:8080/api"

# Environment variable that overrides the configured base URL
API_URL_ENV_VAR = "BUGBOARD_API_URL"

ENDPOINT_LOGIN = "/auth/login"
ENDPOINT_ISSUES = "/issues"
ENDPOINT_USERS = "/users"
ENDPOINT_USER_BY_EMAIL = "/users/email/{email}"
ENDPOINT_COMMENTS = "/comments"
ENDPOINT_COMMENTS_BY_ISSUE = "/comments/issue/{issue_id}"
ENDPOINT_IMAGE = "/images/{filename}"
ENDPOINT_IMAGE_UPLOAD = "/images/upload/{issue_id}"

# ============================================================================
# NETWORK CONFIGURATION
# ============================================================================
# Requests fail once and are never retried. Only connection establishment and
# socket reads are bounded.

# Maximum time to establish a TCP connection with the backend
CONNECT_TIMEOUT_SECONDS = 10

# Maximum time to wait for a response once connected
NETWORK_TIMEOUT_SECONDS = 30

# ============================================================================
# UI DISPATCH
# ============================================================================

# How often the Tk main loop drains completed background work
DISPATCH_POLL_INTERVAL_MS = 50

# ============================================================================
# IMAGES
# ============================================================================

# File formats accepted as issue attachments (glob patterns)
SUPPORTED_IMAGE_EXTENSIONS = ("*.jpg", "*.jpeg", "*.png", "*.gif")

# Bounding box for issue image previews in the detail panel
PREVIEW_SIZE = (320, 240)
