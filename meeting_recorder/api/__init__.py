"""
HTTP API for scheduling meetings and reading their status.
"""
