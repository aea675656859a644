"""
Test suite for the Document Translation Service
"""
