from __future__ import annotations  # Session report package exports

from .models import SessionReport
from .pdf import generate_session_report_pdf
from .summary import average_metrics, format_entry, format_log

__all__ = ["SessionReport", "average_metrics", "format_entry", "format_log", "generate_session_report_pdf"]
