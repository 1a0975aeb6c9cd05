"""
Pocket Ledger - Source Package

Personal finance ledger for one user at a time: bill sessions that batch
paper receipts, manual transactions, monthly budgets and savings goals.

DESIGN PRINCIPLES:
1. Every write is validated before it reaches the store
2. Multi-document changes commit atomically or not at all
3. Conversion of a bill session happens at most once
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Pocket Ledger Team"
