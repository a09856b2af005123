"""
Expense Tracker - Core Package

The state core of a personal expense tracker: a ledger of transactions,
accounts, categories and monthly budgets, the reducer that changes it,
the views derived from it, and the per-slice persistence around it.

DESIGN PRINCIPLES:
1. One writer: every change goes through the reducer
2. The reducer repairs, it never fails
3. Stored data is normalized on the way in
4. Side effects stay outside the reducer and are audited
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Expense Tracker Team"
