"""
chainbatch.

Bounded concurrent blockchain batch transfers and confirmation watching.
"""

__version__ = "0.1.0"
