"""
REST API routers for the Document Translation Service
"""
