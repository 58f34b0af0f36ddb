"""
Stalesweep Test Suite

Test organization:
- unit/ - Unit tests for individual components
- fixtures/ - Test data and a fake directory client
"""
