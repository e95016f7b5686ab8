"""
Console front end for the stock order book.
"""

from .console import ConsoleApp

__all__ = ["ConsoleApp"]
