"""Authentication protocol helpers."""
