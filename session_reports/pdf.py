from __future__ import annotations  # Styled PDF rendering for interview session reports

from datetime import datetime
from typing import Any, List, Sequence, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from flow_manager.models import AssessmentRecord, Plan
from .models import SessionReport
from .summary import average_metrics


DEJAVU_SANS = "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"  # System font
DEJAVU_SANS_BOLD = "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf"  # System font

ACCENT = (45, 115, 245)  # Palette accent
TEXT = (34, 34, 34)  # Primary text color
MUTED = (100, 100, 100)  # Secondary text color
RULE = (230, 230, 230)  # Divider color
FOLLOW_UP_BG = (243, 248, 255)  # Follow-up entry background


def _format_datetime(value: str) -> str:  # Format ISO timestamp for display
    try:
        parsed = datetime.fromisoformat(value[:-1] + "+00:00" if value.endswith("Z") else value)
    except ValueError:
        return value or "-"
    return parsed.strftime("%d %b %Y, %H:%M")


def _effective_width(pdf: FPDF) -> float:  # Compute effective page width
    return float(pdf.w) - float(pdf.l_margin) - float(pdf.r_margin)


class ReportPDF(FPDF):  # PDF with banner header and paginated footer
    def __init__(self, *args, accent: Tuple[int, int, int] = ACCENT, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.accent = accent
        self.header_title = "Interview Report"
        self._font_regular = "Helvetica"
        self._font_bold = "Helvetica"
        self._supports_unicode = False

    def use_unicode_fonts(self) -> None:
        try:
            self.add_font("DejaVu", "", DEJAVU_SANS)
            self.add_font("DejaVu", "B", DEJAVU_SANS_BOLD)
        except (FileNotFoundError, OSError, RuntimeError):
            return
        self._font_regular = "DejaVu"
        self._font_bold = "DejaVu"
        self._supports_unicode = True

    def prepare(self, text: Any) -> str:  # Sanitize text for core fonts
        value = "" if text is None else str(text)
        if self._supports_unicode:
            return value
        cleaned = value.replace("•", "-").replace("…", "...").replace("“", '"').replace("”", '"')
        return cleaned.encode("latin-1", "ignore").decode("latin-1")

    def header(self) -> None:  # Render header banner
        usable = _effective_width(self)
        if self.page_no() == 1:
            self.set_fill_color(*self.accent)
            self.rect(0, 0, self.w, 20, style="F")
            self.set_text_color(255, 255, 255)
            self.set_font(self._font_bold, "B", 16)
            self.set_xy(self.l_margin, 6)
            self.multi_cell(usable, 8, self.prepare(self.header_title))
            self.set_text_color(*TEXT)
            self.ln(4)
            return
        self.set_text_color(80, 80, 80)
        self.set_xy(self.l_margin, 8)
        self.set_font(self._font_bold, "B", 12)
        self.multi_cell(usable, 6, self.prepare(self.header_title))
        mark = self.get_y()
        self.set_draw_color(*self.accent)
        self.set_line_width(0.4)
        self.line(self.l_margin, mark + 1, self.w - self.r_margin, mark + 1)
        self.set_text_color(*TEXT)
        self.ln(4)

    def footer(self) -> None:  # Render footer with pagination
        self.set_y(-12)
        self.set_draw_color(*RULE)
        self.set_line_width(0.2)
        self.line(self.l_margin, self.get_y(), self.w - self.r_margin, self.get_y())
        self.set_text_color(120, 120, 120)
        self.set_font(self._font_regular, "", 9)
        self.cell(0, 10, f"Page {self.page_no()}/{{nb}}", align="R")


def _section_title(pdf: ReportPDF, title: str) -> None:  # Render styled section title
    pdf.set_text_color(*TEXT)
    pdf.set_x(pdf.l_margin)
    pdf.set_font(pdf._font_bold, "B", 13)
    pdf.cell(0, 9, pdf.prepare(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_draw_color(*RULE)
    pdf.set_line_width(0.2)
    y = pdf.get_y()
    pdf.line(pdf.l_margin, y, pdf.l_margin + _effective_width(pdf), y)
    pdf.ln(2)


def _paragraph(pdf: ReportPDF, text: str, *, muted: bool = False, size: int = 11) -> None:
    pdf.set_x(pdf.l_margin)
    pdf.set_text_color(*(MUTED if muted else TEXT))
    pdf.set_font(pdf._font_regular, "", size)
    pdf.multi_cell(_effective_width(pdf), 6, pdf.prepare(text))
    pdf.set_text_color(*TEXT)


def _meta_block(pdf: ReportPDF, rows: Sequence[Tuple[str, str]]) -> None:  # Draw label/value rows
    label_width = 45.0
    for label, value in rows:
        pdf.set_x(pdf.l_margin)
        pdf.set_text_color(*MUTED)
        pdf.set_font(pdf._font_regular, "", 10)
        pdf.cell(label_width, 6, pdf.prepare(label), new_x=XPos.RIGHT, new_y=YPos.TOP)
        pdf.set_text_color(*TEXT)
        pdf.set_font(pdf._font_bold, "B", 11)
        pdf.multi_cell(_effective_width(pdf) - label_width, 6, pdf.prepare(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.ln(2)


def _render_plan(pdf: ReportPDF, plan: Plan | None) -> None:
    if plan is None:
        _paragraph(pdf, "No plan was accepted for this session.", muted=True)
        return
    bullet = "•" if pdf._supports_unicode else "-"
    for topic_index, topic in enumerate(plan.topics):
        pdf.set_x(pdf.l_margin)
        pdf.set_font(pdf._font_bold, "B", 11)
        pdf.multi_cell(_effective_width(pdf), 6, pdf.prepare(f"Topic {topic_index}: {topic.name}"))
        for question_index, question in enumerate(topic.questions):
            _paragraph(pdf, f"  {bullet} Q{question_index}: {question}", size=10)
    pdf.ln(2)


def _render_entries(pdf: ReportPDF, entries: Sequence[AssessmentRecord], plan: Plan | None) -> None:  # Draw the assessment log
    if not entries:
        _paragraph(pdf, "No answers were assessed in this session.", muted=True)
        return
    for index, record in enumerate(entries, start=1):
        position = record.position
        heading = f"{index}. Topic {position.topic_index}, Question {position.question_index} ({record.turn_kind})"
        if record.turn_kind == "follow-up":
            pdf.set_fill_color(*FOLLOW_UP_BG)
            pdf.rect(pdf.l_margin, pdf.get_y(), _effective_width(pdf), 7, style="F")
        pdf.set_x(pdf.l_margin)
        pdf.set_font(pdf._font_bold, "B", 11)
        pdf.cell(0, 7, pdf.prepare(heading), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        question = plan.question(position) if plan is not None else None
        if question:
            _paragraph(pdf, question, muted=True, size=10)
        metrics = record.metrics
        _paragraph(
            pdf,
            f"Accuracy {metrics.accuracy:.2f} | Relevance {metrics.relevance:.2f} | "
            f"Clarity {metrics.clarity:.2f} | Completeness {metrics.completeness:.2f}",
            size=10,
        )
        _paragraph(pdf, f"Action: {record.action_code.label}", size=10)
        if record.reason:
            _paragraph(pdf, f"Reason: {record.reason}", size=10)
        if record.discussion_point:
            _paragraph(pdf, f"Discussion point: {record.discussion_point}", size=10)
        pdf.ln(2)


def generate_session_report_pdf(report: SessionReport) -> bytes:  # Build PDF payload for a session report
    pdf = ReportPDF()
    pdf.use_unicode_fonts()
    pdf.alias_nb_pages()
    pdf.header_title = "Adaptive Interview - Evaluation Report"
    pdf.set_margins(15, 22, 15)
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    _section_title(pdf, "Session Overview")
    rows: List[Tuple[str, str]] = [
        ("Session ID", report.session_id),
        ("Created", _format_datetime(report.created_at)),
        ("Assessed answers", str(len(report.entries))),
    ]
    for key, value in average_metrics(report.entries).items():
        rows.append((f"Avg {key}", f"{value:.2f}"))
    _meta_block(pdf, rows)

    _section_title(pdf, "Interview Plan")
    _render_plan(pdf, report.plan)

    _section_title(pdf, "Assessment Log")
    _render_entries(pdf, report.entries, report.plan)

    if report.narrative:
        _section_title(pdf, "Narrative Report")
        _paragraph(pdf, report.narrative)

    return bytes(pdf.output())


__all__ = ["ReportPDF", "generate_session_report_pdf"]
