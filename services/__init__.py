"""
LedgerDesk services.
"""
