"""Series and liquidity-plan export."""
