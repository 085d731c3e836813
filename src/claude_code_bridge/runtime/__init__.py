"""Process runtime: supervision and termination of the claude subprocess."""

from .supervisor import ProcessSpec, ProcessSupervisor
from .terminator import ProcessTerminator, list_descendants

__all__ = [
    "ProcessSpec",
    "ProcessSupervisor",
    "ProcessTerminator",
    "list_descendants",
]
