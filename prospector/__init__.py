"""
Prospector: collect entity records from several web sources into one dataset.
"""

__version__ = "0.1.0"
