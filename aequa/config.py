"""Centralized configuration for AEQUA.

This module defines:
- Rewrite budgets (passes over the tree, rewrites at a single node)
- Precision of the arbitrary-precision Real variant
- Expression pool sizing and cleanup cadence
- Library log level

Every value can be overridden via environment variables prefixed with
AEQUA_. Values are read once, at import time.
"""

import os

# Rewrite engine budgets
MAX_REWRITE_PASSES = int(os.getenv("AEQUA_MAX_REWRITE_PASSES", "64"))
MAX_NODE_REWRITES = int(os.getenv("AEQUA_MAX_NODE_REWRITES", "64"))

# Numeric tower
REAL_PRECISION = int(os.getenv("AEQUA_REAL_PRECISION", "50"))  # significant digits

# Expression pool
MAX_EXPRESSION_CACHE_SIZE = int(os.getenv("AEQUA_CACHE_SIZE", "5000"))
CLEANUP_THRESHOLD_BYTES = int(
    os.getenv("AEQUA_CLEANUP_THRESHOLD_BYTES", str(100 * 1024 * 1024))
)
CLEANUP_INTERVAL = float(os.getenv("AEQUA_CLEANUP_INTERVAL", "60"))  # seconds
MONITOR_INTERVAL = float(os.getenv("AEQUA_MONITOR_INTERVAL", "30"))  # seconds
ENABLE_SHARING = os.getenv("AEQUA_ENABLE_SHARING", "true").lower() == "true"

# Builder
MAX_CACHED_VARIABLES = int(os.getenv("AEQUA_MAX_CACHED_VARIABLES", "1000"))

# Logging
LOG_LEVEL = os.getenv("AEQUA_LOG_LEVEL", "WARNING")
