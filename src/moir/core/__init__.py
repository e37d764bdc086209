"""Shared infrastructure: configuration, errors, events, logging and the CLI."""
