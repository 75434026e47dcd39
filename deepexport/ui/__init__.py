"""Console user interface package for Deep Export."""

from .export_console import ExportConsole

__all__ = ["ExportConsole"]
