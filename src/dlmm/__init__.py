"""DLMM Workbench - bin liquidity fee engine and trade-stream simulator."""

__version__ = "0.3.0"
