"""
festboard
Live results board for the school arts festival.
"""

__version__ = "1.0.0"
