from .exceptions import CopilotError, GraphDataError

__all__ = ["CopilotError", "GraphDataError"]
