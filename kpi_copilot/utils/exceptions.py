"""Exception hierarchy for KPI Copilot.

Query handling never raises; these cover host integration errors only.
"""


class CopilotError(Exception):
    """Base exception for all copilot errors."""


class GraphDataError(CopilotError):
    """Node/edge payload supplied by the host could not be validated."""
