"""
HTTP layer for the market-data service.
"""

from api.server import app, create_app

__all__ = ['app', 'create_app']
