"""Notification inbox and event-driven fanout."""
