"""
SnapExpense - Source Package

A small single-user expense tracker: snap a receipt, let the AI
pre-fill what it can, confirm, and keep a local history of claims.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → Store persists
2. Manual entry always works, with or without the AI
3. Local data never crashes startup
4. Every mutation is written through immediately
"""

__version__ = "1.0.0"
__author__ = "SnapExpense Team"
