"""
Unit Testing Package

Offline tests for the validation package; no database required.
"""
