"""Constants and defaults for termxfer."""

# Box drawing characters (Unicode).
BOX_TL = "╔"
BOX_TR = "╗"
BOX_BL = "╚"
BOX_BR = "╝"
BOX_H = "═"
BOX_V = "║"

# Single-line box characters.
SB_TL = "┌"
SB_TR = "┐"
SB_BL = "└"
SB_BR = "┘"
SB_H = "─"
SB_V = "│"

PROGRESS_FILL = "█"
PROGRESS_EMPTY = "░"

# Color pair IDs.
C_EXPLORER = 1
C_EXPLORER_FOCUS = 2
C_FILE_SELECTED = 3
C_FILE_DIRECTORY = 4
C_FILE_SYMLINK = 5
C_FILE_MARKED = 6
C_STATUS = 7
C_FOOTER = 8
C_DIALOG = 9
C_DIALOG_TITLE = 10
C_BUTTON = 11
C_BUTTON_SEL = 12
C_INPUT = 13
C_PROGRESS = 14
C_LOG_INFO = 15
C_LOG_WARN = 16
C_LOG_ERROR = 17
C_FATAL = 18

# Layout
STATUS_BAR_HEIGHT = 1         # One status row under each explorer
FOOTER_HEIGHT = 1             # Key hints on the last row
LOG_PANEL_HEIGHT = 8          # Log panel rows (including border)
MIN_TERM_WIDTH = 60
MIN_TERM_HEIGHT = 16

# Runtime defaults
TICK_INTERVAL_MS = 50                # Event loop poll timeout
LOG_RING_CAPACITY = 256              # Log records kept for display
DEFAULT_CHUNK_SIZE = 64 * 1024       # Bytes per transfer chunk
WATCHER_POLL_INTERVAL = 5.0          # Seconds between watcher scans
WATCHER_MAX_PATHS = 32               # Maximum watched local paths
WATCHER_EVENT_QUEUE_SIZE = 1024      # Events buffered between thread and tick
WATCHER_JOIN_TIMEOUT = 5.0
WATCHED_EVENTS_HISTORY = 64          # Events kept for the watched paths list
RECONNECT_ATTEMPTS = 5               # Consecutive failures before giving up
RECONNECT_BACKOFF_BASE = 1.0         # Seconds before the first retry
RECONNECT_BACKOFF_MAX = 30.0         # Upper bound for the retry delay
CACHE_DIR_PREFIX = "termxfer-"
LIVENESS_CHECK_INTERVAL = 5.0        # Seconds between remote liveness checks
PROGRESS_REDRAW_INTERVAL = 0.1       # Seconds between progress popup redraws
