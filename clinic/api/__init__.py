"""
HTTP API for the clinic appointments service.
"""
