"""Command line interface."""

from .commands import create_parser, main

__all__ = ["create_parser", "main"]
