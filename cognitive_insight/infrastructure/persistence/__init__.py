"""Persistence adapters for stored results."""
