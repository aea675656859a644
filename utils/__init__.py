"""
Shared utilities: exceptions, error handling, logging and health checks
"""
