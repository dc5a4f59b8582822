"""Event-driven simulation driver."""
