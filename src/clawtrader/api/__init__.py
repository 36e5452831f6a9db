"""
HTTP API for ClawTrader.

Exposes the trading service (smart trades, forced trades, agent balances and
funding) through FastAPI.
"""

from .app import create_app

__all__ = ["create_app"]
