"""
Core infrastructure: settings, connection pool, transactions, errors
"""
