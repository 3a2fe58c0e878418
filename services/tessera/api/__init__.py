"""Tessera HTTP API."""
