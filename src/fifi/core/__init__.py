"""Ambient primitives: errors, logging, settings, events."""
