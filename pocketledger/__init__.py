"""
Pocket Ledger - Source Package

The reconciliation and budget-rollover engine of a personal finance
tracker.

DESIGN PRINCIPLES:
1. Money is Decimal, never float
2. Payments settle the oldest debt first
3. Settlements are history and are never rewritten
4. Every state change is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
