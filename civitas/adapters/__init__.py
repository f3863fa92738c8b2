"""Chat-platform adapters."""
