"""n8n workflow document model and builder."""

from .builder import build_workflow, download_name
from .ids import IdSource, UuidIdSource
from .schema import WorkflowBuildResult, WorkflowDocument, WorkflowOptions

__all__ = [
    "IdSource",
    "UuidIdSource",
    "WorkflowBuildResult",
    "WorkflowDocument",
    "WorkflowOptions",
    "build_workflow",
    "download_name",
]
