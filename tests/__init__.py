"""
Test suite for tokensale

Contains:
- tests/unit/          : Unit tests for individual modules
"""
