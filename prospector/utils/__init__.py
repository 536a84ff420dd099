"""Prospector utilities: configuration and structured logging."""
