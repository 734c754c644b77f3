"""
merkletree Command Line Interface.

This package provides a thin command-line wrapper around the library for
building trees and generating and checking proofs.
"""

# Import the main CLI entry point
from .main import cli, main

# Re-export for easier imports
__all__ = [
    'cli',
    'main',
]
