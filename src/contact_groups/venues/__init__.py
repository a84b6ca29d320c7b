"""Venue lookup, scoring and caching for event detection."""
