from __future__ import annotations

# Checks file, looked up in the working directory unless overridden
CHECKS_FILE = "checks.yml"
CHECKS_FILE_ENV = "UPTIME_MONITOR_CHECKS"

# Probe settings
HTTP_TIMEOUT_SECONDS = 10.0  # total budget for one GET, connect included
PING_TIMEOUT_SECONDS = 1.0  # fail if no echo reply within this time
PING_KILL_GRACE_SECONDS = 0.5  # extra wait before the ping process is killed

# Rolling window sizes (per endpoint)
SHORT_WINDOW = 10
LONG_WINDOW = 100
HISTORY_WINDOW = 50

# Logging
LOG_FILE = "uptime_monitor.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
LOG_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# History glyphs
GLYPH_OK = "."
GLYPH_FAIL = "F"

# Row styles
STYLE_OK = "green"
STYLE_FAIL = "red"
STYLE_PENDING = "dim"
