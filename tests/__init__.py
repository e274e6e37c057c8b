"""
Test suite for the prediction market engine

Contains:
- tests/unit/          : Unit tests for individual modules and end-to-end round scenarios
"""
