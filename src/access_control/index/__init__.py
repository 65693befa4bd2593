"""Search index and index documents."""
