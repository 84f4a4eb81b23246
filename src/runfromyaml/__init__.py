__version__ = "0.1.0"

from .engine import execute, OperationResult, RunContext, RunReport
from .document import load_document, parse_document, validate_document
from .errors import ConfigWriteError, DocumentError, ExecutionError, RunFromYAMLError, ValidationError
from .model import Operation, OperationType, OutputType, WorkflowDocument

__all__ = [
    "execute",
    "OperationResult",
    "RunContext",
    "RunReport",
    "load_document",
    "parse_document",
    "validate_document",
    "ConfigWriteError",
    "DocumentError",
    "ExecutionError",
    "RunFromYAMLError",
    "ValidationError",
    "Operation",
    "OperationType",
    "OutputType",
    "WorkflowDocument",
]
