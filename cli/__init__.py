"""Command-line client for the air quality API."""
