"""
Design (config.py)
- Purpose: Centralize constants and configuration.
- Inputs: Environment (FLEETMAINT_DATA_DIR, FLEETMAINT_LOG_LEVEL).
- Outputs: Constants (thresholds, preview sizes, blob keys, window title).
- Side effects: None.
- Thread-safety: N/A (read-only constants).
"""

import os

APP_NAME = "Fleet Maintenance Desk"

# Components are overdue once their last maintenance is older than this
OVERDUE_DAYS = 90

# Calendar: jobs shown inside one day cell before "+N more"
CALENDAR_PREVIEW_COUNT = 2
# Calendar: rows in the "upcoming this month" list
UPCOMING_LIMIT = 5

# Notification feed shows at most this many undismissed entries
NOTIFICATION_PREVIEW_LIMIT = 10

# maximum number of log lines kept in the Logs panel (oldest trimmed)
LOG_MAX_LINES = 1000

# Desktop toast lifetime (seconds)
NOTIFY_TIMEOUT_SEC = 5

# Job form default assignee (the seeded engineer)
DEFAULT_ENGINEER_ID = "3"

## Persistence: one JSON blob per key (path resolved in storage module)
SHIPS_KEY = "ships"
COMPONENTS_KEY = "components"
JOBS_KEY = "jobs"
NOTIFICATIONS_KEY = "notifications"
CURRENT_USER_KEY = "currentUser"

DATA_DIR_ENV = "FLEETMAINT_DATA_DIR"
DATA_DIR_NAME = APP_NAME

LOG_LEVEL = os.environ.get("FLEETMAINT_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
