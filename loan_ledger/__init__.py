"""
Lending Ledger

Bookkeeping for informal lending: borrowers, loans issued to them under one
of four repayment strategies, and the payment schedule collected over time.
All amounts use Decimal.
"""

__version__ = "1.0.0"
