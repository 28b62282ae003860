"""
Loan Tracker

Records customer loans, accepts partial payments against them, derives payment
status and renders PDF receipts and reports. All monetary math uses Decimal.
"""

__version__ = "1.0.0"
