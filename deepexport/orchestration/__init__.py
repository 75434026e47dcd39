"""Workflow orchestration package for Deep Export.

This package contains the components that run an export:
- ExportLogger: Structured run log written to a timestamped file.
- ExportOrchestrator: Central coordinator for the count and export workflows.
"""

from deepexport.orchestration.export_logger import ExportLogger
from deepexport.orchestration.export_orchestrator import ExportOrchestrator

__all__ = ["ExportLogger", "ExportOrchestrator"]
