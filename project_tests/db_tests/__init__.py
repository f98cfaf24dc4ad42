"""
Database Testing Package

Live tests of the users table schema and constraints.
"""
