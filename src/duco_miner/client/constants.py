"""Shared constants for the client module."""

# Every this many shares (accepted + rejected) a worker logs a summary
SUMMARY_INTERVAL_SHARES = 10

# Timeout for closing a pool socket (seconds)
DISCONNECT_TIMEOUT = 5.0

# Maximum length for pool-provided text in logs (banner, feedback, job lines)
MAX_LOGGED_LINE_LENGTH = 200

# Maximum accepted line length from the pool (bytes)
MAX_LINE_LENGTH = 64 * 1024
