"""
Test suite for stakeledger

Contains:
- tests/unit/          : Unit tests for individual modules and the protocol facade
"""
