"""
Order Transactions - transactional order processing over PostgreSQL
"""
__version__ = "1.0.0"
