"""
Dependency Freshness Tool

A tool for reporting how far behind each consumed upstream dependency of a build is.
"""

__version__ = "0.1.0"
__author__ = "Imranur Rahman"

from .cli import main

__all__ = ["main"]
