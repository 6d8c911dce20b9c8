"""
SecureBank

A small retail banking service: account registration and login, deposits,
withdrawals, inter-account transfers and statement export, with every
monetary value held as Decimal and every state change audited.
"""

__version__ = "1.0.0"
