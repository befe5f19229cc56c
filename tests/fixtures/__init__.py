"""
Test Fixtures and Utilities

Shared builders for answers and flow definitions used across the suite.
"""
