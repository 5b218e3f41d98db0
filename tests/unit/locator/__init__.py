"""
Tests for locator models, paths and parsing.
"""
