"""
Finance Tracker - Source Package

A personal finance tracker that records income, payments, debts and
receivables, and keeps them in sync across devices through a few
small remote backends.

DESIGN PRINCIPLES:
1. Local state is the source of truth until a remote proves otherwise
2. Last writer wins, keyed by each entry's updatedAt
3. Nothing created locally is dropped before a remote acknowledges it
4. Sync failures degrade to local state, never to data loss
5. Storage and remotes are swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
