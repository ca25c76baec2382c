"""
Mindy: drive an RStudio session from the command line.
"""

__version__ = "0.1.0"
