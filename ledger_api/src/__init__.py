"""FastAPI service for paginated deposit and transaction history.

This package provides REST API endpoints that serve a caller's own
deposit records and admin listings of deposits and withdrawals from
MongoDB.
"""

__version__ = "1.0.0"
