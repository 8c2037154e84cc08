"""
Clinic appointments service: slot availability, booking and cancellation.
"""

__version__ = "1.0.0"
