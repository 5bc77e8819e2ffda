"""Shared infrastructure: settings, logging, monitoring and the database layer."""
