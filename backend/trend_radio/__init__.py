"""Trend radio stream configuration and health-monitoring backend."""
