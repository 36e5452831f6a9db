"""
Integration tests for ClawTrader components.

Integration tests exercise the trading service and the HTTP API end to end,
with market data mocked and the in-memory paper vault standing in for the
on-chain agent vault.
"""
