"""Bin grid, fee, volatility, liquidity and depletion engines."""
