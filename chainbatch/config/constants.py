"""
Application constants.

Centralized defaults for batch dispatching, confirmation watching and gas.
"""

# ========================================================================
# BLOCKCHAIN CONSTANTS
# ========================================================================

# RPC provider HTTP timeout (in seconds)
BLOCKCHAIN_RPC_TIMEOUT = 30.0

# Thread pool size for blocking (sync) collaborator calls
BLOCKCHAIN_EXECUTOR_MAX_WORKERS = 8

# ========================================================================
# BATCH TRANSFER CONSTANTS
# ========================================================================

# Maximum submissions in flight per batch
DEFAULT_BATCH_CONCURRENCY = 4

# ========================================================================
# CONFIRMATION CONSTANTS
# ========================================================================

DEFAULT_CONFIRMATION_BLOCKS = 6
DEFAULT_CONFIRMATION_TIMEOUT = 120.0  # 2 minutes
DEFAULT_CONFIRMATION_POLL_INTERVAL = 1.0  # one receipt/height check per second

# ========================================================================
# GAS CONSTANTS
# ========================================================================

DEFAULT_GAS_MARGIN_PERCENT = 20
DEFAULT_NATIVE_GAS_LIMIT = 21000  # Standard native coin transfer

GWEI = 10**9
