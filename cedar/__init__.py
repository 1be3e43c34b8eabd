"""
Cedar Budget - Source Package

A personal budget tracker for households living in a dual-currency
(LBP/USD) economy, with a Gemini-powered assistant named Cedar.

DESIGN PRINCIPLES:
1. AI suggests → Human confirms → Ledger admits
2. One admission path for forms, chat and receipts
3. Summaries are derived, never stored
4. Every admission and rejection is auditable
5. Every external wait has a bound
"""

__version__ = "1.0.0"
__author__ = "Cedar Budget Team"
