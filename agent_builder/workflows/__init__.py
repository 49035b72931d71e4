"""
Workflow documents and the command-line interface.
"""
from .serialization import WorkflowDocument, WorkflowSerializer, node_from_dict, validate_workflow

__all__ = [
    'WorkflowDocument',
    'WorkflowSerializer',
    'node_from_dict',
    'validate_workflow',
]
