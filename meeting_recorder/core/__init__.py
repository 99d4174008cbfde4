"""
Core infrastructure: logging, exceptions and dependency wiring.
"""
