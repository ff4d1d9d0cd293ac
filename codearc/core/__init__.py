"""Core infrastructure: context, logging, errors, events and storage."""
