"""Change detection, history, cache and notification state for readings."""
