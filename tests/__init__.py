"""
Shelfkeeper Test Suite

Tests are organized into:
- unit/: Unit tests for parsing, validation, lockout, tokens and repositories
- integration/: Integration tests for the HTTP API
"""
