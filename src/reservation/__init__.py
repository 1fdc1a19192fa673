"""
Seat reservation engine for scheduled bus trips
"""
__version__ = "1.0.0"
