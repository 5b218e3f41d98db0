"""
Tests for the DOM snapshot module.
"""
