"""Core infrastructure: settings, logging, exceptions and data models."""
