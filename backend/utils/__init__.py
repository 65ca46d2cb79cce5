"""
Shared helpers for the tracker backend: response builders, error types and
geodesy routines.
"""
