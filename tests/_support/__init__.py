"""
Test support utilities for fifi tests.

Builders and collaborator fakes that don't fit as pytest fixtures but are
useful across multiple test files.
"""
