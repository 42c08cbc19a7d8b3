from .generator import (
    FULL_REPORT_TITLE,
    REPORT_FOOTER,
    Report,
    ReportSection,
    ReportGenerator,
    overall_grade,
    slugify,
)

__all__ = [
    "FULL_REPORT_TITLE",
    "REPORT_FOOTER",
    "Report",
    "ReportSection",
    "ReportGenerator",
    "overall_grade",
    "slugify",
]
