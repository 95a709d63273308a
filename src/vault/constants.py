"""Vault-wide numeric constants.

All ratios and fees are basis points (10_000 = 100%). Amounts are integer
counts of the asset's smallest unit.
"""

MAX_BPS = 10_000
SECS_PER_YEAR = 31_536_000  # 365 days
MAXIMUM_STRATEGIES = 20

DEFAULT_PERFORMANCE_FEE_BPS = 1_000  # 10%
DEFAULT_MANAGEMENT_FEE_BPS = 200  # 2% per year
DEFAULT_LOCK_FULL_DURATION = 6 * 60 * 60  # 6 hours

# Allowance value that is never decremented on spend.
UNLIMITED_ALLOWANCE = 2**256 - 1
