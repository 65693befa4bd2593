"""Token resolution."""
