"""Adapters for external systems: the saved-jobs REST API."""
