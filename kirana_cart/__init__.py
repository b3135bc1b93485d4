"""Temporal detection stabilizer and checkout loop for a camera-based cart"""

__version__ = "1.0.0"
