"""
Ledger Sync - Source Package

The synchronization and multi-currency valuation core of a personal
multi-account finance tracker.

DESIGN PRINCIPLES:
1. No identity → no data access
2. Fail early, fail visibly
3. No silent conversions (a missing rate is reported, never guessed)
4. The remote store is the single source of truth
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Ledger Sync Team"
