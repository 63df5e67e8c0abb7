"""
Ledger Fees - Source Package

Client-side fee handling for a ledger administration console: converts
console transactions into the fee engine's wire shape, nets accounts
that sit on both sides of a split, and turns fee engine responses into
display-ready fee figures.

DESIGN PRINCIPLES:
1. Money is Decimal from the wire to the display
2. Fee figures are advisory; a fee engine failure never blocks a transaction
3. Every rewrite of what the user authored is reported
4. Every step must be auditable
"""

__version__ = "1.0.0"
__author__ = "Ledger Fees Team"
