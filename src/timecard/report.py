#!/usr/bin/env python3
"""
Weekly report export for Timecard.
Collects a week's figures, lays them out on A4 pages and renders the
result to PDF.
"""

import html
import textwrap
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .lifecycle import ActionResult
from .logger import TrackerLogger
from .progress import ProgressCalculator, ProgressSnapshot
from .session import NormalizedSession, session_minutes
from .time_utils import (
    MONDAY_FIRST_DAY_NAMES,
    format_date,
    format_date_time,
    format_duration,
    format_hours,
    format_time,
    minutes_to_hours,
)

# Vertical positions in millimetres on an A4 page
PAGE_TOP_Y = 20.0
PAGE_BREAK_Y = 270.0
HEADER_END_Y = 72.0
TABLE_ROW_HEIGHT = 8.0
SESSION_ROW_HEIGHT = 10.0
REFLECTION_LINE_HEIGHT = 6.0
REFLECTION_WRAP_CHARS = 95

SAMPLE_REFLECTION = """This week I focused on:
- Completing project milestones ahead of schedule
- Collaborating with the design team on new features
- Optimizing performance in key user flows
- Participating in team knowledge sharing sessions

Key achievements:
- Delivered feature ahead of deadline
- Improved app performance by 15%
- Mentored 2 junior developers

Next week priorities:
- Implement new authentication flow
- Conduct user testing sessions
- Refactor legacy components"""


@dataclass(frozen=True)
class SessionRow:
    date: str
    time_in: str
    time_out: str
    duration: str
    status: str


@dataclass
class WeeklyReportData:
    """Everything the report shows, already formatted where it matters."""

    generated_at: datetime
    range_start: datetime
    range_end: datetime
    progress: ProgressSnapshot
    week_minutes: float
    reflection: str
    day_rows: List[List[Any]]
    session_rows: List[SessionRow]
    user_email: str = ""

    @classmethod
    def build(
        cls,
        sessions: Iterable[NormalizedSession],
        now: datetime,
        reflection: str = "",
        week_start: Optional[datetime] = None,
        week_end: Optional[datetime] = None,
        user_email: str = "",
        calculator: Optional[ProgressCalculator] = None,
    ) -> "WeeklyReportData":
        """Select the sessions in range and compute the report figures.

        Without a range every session is reported. The running session does
        not count towards report totals.
        """
        calculator = calculator or ProgressCalculator()
        selected = select_report_sessions(sessions, week_start, week_end)
        progress = calculator.calculate(selected)

        dates = sorted(s.time_in_date for s in selected if s.time_in_date)
        range_start = week_start or (dates[0] if dates else now)
        range_end = week_end or (dates[-1] if dates else now)

        return cls(
            generated_at=now,
            range_start=range_start,
            range_end=range_end,
            progress=progress,
            week_minutes=progress.completed_minutes,
            reflection=reflection.strip(),
            day_rows=report_day_rows(selected),
            session_rows=[session_row(s) for s in reversed(selected)],
            user_email=user_email,
        )

    @property
    def filename(self) -> str:
        return f"weekly-report-{self.generated_at:%Y-%m-%d}.pdf"


def select_report_sessions(
    sessions: Iterable[NormalizedSession],
    week_start: Optional[datetime] = None,
    week_end: Optional[datetime] = None,
) -> List[NormalizedSession]:
    sessions = list(sessions)
    if week_start is None or week_end is None:
        return sessions
    return [
        s
        for s in sessions
        if s.time_in_date is not None and week_start <= s.time_in_date <= week_end
    ]


def report_day_rows(sessions: Iterable[NormalizedSession]) -> List[List[Any]]:
    """``[day name, minutes]`` for Monday through Sunday, by rounded time-in."""
    minutes = {name: 0.0 for name in MONDAY_FIRST_DAY_NAMES}
    for session in sessions:
        if not session.has_rounded_range:
            continue
        name = MONDAY_FIRST_DAY_NAMES[session.time_in_rounded_date.weekday()]
        minutes[name] += session_minutes(session)
    return [[name, minutes[name]] for name in MONDAY_FIRST_DAY_NAMES]


def session_row(session: NormalizedSession) -> SessionRow:
    finished = session.has_rounded_range
    return SessionRow(
        date=format_date(session.time_in_date) if session.time_in_date else "-",
        time_in=(
            format_time(session.time_in_rounded_date)
            if session.time_in_rounded_date
            else "-"
        ),
        time_out=(
            format_time(session.time_out_rounded_date)
            if session.time_out_rounded_date
            else "-"
        ),
        duration=(
            format_hours(minutes_to_hours(session_minutes(session)))
            if finished
            else "Active"
        ),
        status="Done" if session.time_out_rounded_date else "Live",
    )


@dataclass
class LayoutBlock:
    kind: str
    y: float
    content: Dict[str, Any] = field(default_factory=dict)


class ReportLayout:
    """Places report blocks on pages, breaking before rows that start too low."""

    def __init__(self):
        self.pages: List[List[LayoutBlock]] = [[]]
        self.y = PAGE_TOP_Y

    def new_page(self) -> None:
        self.pages.append([])
        self.y = PAGE_TOP_Y

    def place(
        self, kind: str, height: float, paginate: bool = False, **content: Any
    ) -> LayoutBlock:
        if paginate and self.y > PAGE_BREAK_Y:
            self.new_page()
        block = LayoutBlock(kind=kind, y=self.y, content=content)
        self.pages[-1].append(block)
        self.y += height
        return block

    @classmethod
    def from_data(cls, data: WeeklyReportData) -> "ReportLayout":
        layout = cls()
        progress = data.progress

        layout.place("title", 8, text="WEEKLY TIME REPORT")
        layout.place(
            "subtitle", 8, text=f"Generated: {format_date_time(data.generated_at)}"
        )
        layout.place(
            "summary",
            HEADER_END_Y - layout.y,
            total=format_duration(progress.total_minutes),
            target=f"{progress.target_hours:g} hours",
            remaining=f"{progress.remaining_hours:.2f} hours",
            percentage=progress.progress_percentage,
        )

        layout.place("heading", 6, text="Week Summary")
        layout.place(
            "table-header", TABLE_ROW_HEIGHT, columns=["Week Range", "Total Hours"]
        )
        layout.place(
            "row",
            TABLE_ROW_HEIGHT + 8,
            cells=[
                f"{format_date(data.range_start)} - {format_date(data.range_end)}",
                format_hours(minutes_to_hours(data.week_minutes)),
            ],
        )

        layout.place("heading", 8, text="Weekly Reflection")
        lines = wrap_reflection(data.reflection or "No weekly report provided.")
        layout.place(
            "reflection", len(lines) * REFLECTION_LINE_HEIGHT + 16, lines=lines
        )

        layout.place("heading", 8, text="Days Summary")
        layout.place("table-header", TABLE_ROW_HEIGHT, columns=["Day", "Total Hours"])
        for name, minutes in data.day_rows:
            layout.place(
                "row",
                TABLE_ROW_HEIGHT,
                paginate=True,
                cells=[name, format_hours(minutes_to_hours(minutes))],
            )
        layout.y += 10

        layout.place("heading", 8, text="Time Sessions")
        if not data.session_rows:
            layout.place("note", 8, text="No sessions recorded this week.")
        else:
            layout.place(
                "table-header",
                SESSION_ROW_HEIGHT,
                columns=["Date", "In", "Out", "Duration", "Status"],
            )
            for row in data.session_rows:
                layout.place(
                    "row",
                    SESSION_ROW_HEIGHT,
                    paginate=True,
                    cells=[
                        row.date,
                        row.time_in,
                        row.time_out,
                        row.duration,
                        row.status,
                    ],
                )

        layout.place(
            "footer",
            0,
            lines=[
                "Generated with Timecard",
                f"User: {data.user_email or 'Anonymous'}",
            ],
        )
        return layout


def wrap_reflection(text: str) -> List[str]:
    lines: List[str] = []
    for paragraph in text.splitlines():
        lines.extend(textwrap.wrap(paragraph, REFLECTION_WRAP_CHARS) or [""])
    return lines


REPORT_CSS = """
@page { size: A4; margin: 14mm; }
body { font-family: Helvetica, Arial, sans-serif; font-size: 9pt; color: #282828; }
section.page { page-break-after: always; }
section.page:last-child { page-break-after: auto; }
h1 { font-size: 18pt; text-align: center; margin: 0; }
p.subtitle { text-align: center; color: #3c3c3c; }
div.summary {
    background: #f5f5f5; border: 1px solid #c8c8c8; border-radius: 2mm; padding: 3mm;
}
div.bar { background: #e6e6e6; height: 6mm; }
div.bar span { display: block; background: #505050; height: 6mm; }
table { width: 100%; border-collapse: collapse; margin-bottom: 4mm; }
th { background: #e6e6e6; text-align: left; padding: 1.5mm; }
td { border: 1px solid #c8c8c8; padding: 1.5mm; }
pre.reflection {
    border: 1px solid #c8c8c8; border-radius: 2mm; padding: 3mm;
    white-space: pre-wrap; font-family: inherit;
}
footer { text-align: center; font-size: 8pt; color: #646464; margin-top: 6mm; }
"""


def _cells(tag: str, values: Iterable[Any]) -> str:
    return "".join(f"<{tag}>{html.escape(str(v))}</{tag}>" for v in values)


def render_block(block: LayoutBlock) -> str:
    content = block.content
    if block.kind == "title":
        return f"<h1>{html.escape(content['text'])}</h1>"
    if block.kind == "subtitle":
        return f'<p class="subtitle">{html.escape(content["text"])}</p>'
    if block.kind == "summary":
        percentage = content["percentage"]
        return (
            '<div class="summary"><strong>Weekly Summary</strong>'
            f"<p>Total Time: {html.escape(content['total'])} | "
            f"Target: {html.escape(content['target'])} | "
            f"Remaining: {html.escape(content['remaining'])}</p>"
            f'<div class="bar"><span style="width: {percentage:.1f}%"></span></div>'
            f"<p>{percentage:.1f}%</p></div>"
        )
    if block.kind == "heading":
        return f"<h2>{html.escape(content['text'])}</h2>"
    if block.kind == "reflection":
        text = html.escape("\n".join(content["lines"]))
        return f'<pre class="reflection">{text}</pre>'
    if block.kind == "note":
        return f"<p>{html.escape(content['text'])}</p>"
    if block.kind == "footer":
        lines = "<br>".join(html.escape(line) for line in content["lines"])
        return f"<footer>{lines}</footer>"
    raise ValueError(f"Unknown block kind: {block.kind}")


def render_html(layout: ReportLayout) -> str:
    """Render every page as a section; table rows continue across pages."""
    sections = []
    columns: List[str] = []
    for page in layout.pages:
        parts: List[str] = []
        table_open = False
        for block in page:
            if block.kind == "table-header":
                if table_open:
                    parts.append("</table>")
                columns = block.content["columns"]
                parts.append(f"<table><tr>{_cells('th', columns)}</tr>")
                table_open = True
                continue
            if block.kind == "row":
                if not table_open:
                    parts.append(f"<table><tr>{_cells('th', columns)}</tr>")
                    table_open = True
                parts.append(f"<tr>{_cells('td', block.content['cells'])}</tr>")
                continue
            if table_open:
                parts.append("</table>")
                table_open = False
            parts.append(render_block(block))
        if table_open:
            parts.append("</table>")
        sections.append('<section class="page">' + "".join(parts) + "</section>")

    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\">"
        f"<title>Weekly Time Report</title><style>{REPORT_CSS}</style></head>"
        f"<body>{''.join(sections)}</body></html>"
    )


def render_pdf(document_html: str) -> bytes:
    """Render HTML to PDF bytes with WeasyPrint."""
    from weasyprint import HTML

    return HTML(string=document_html).write_pdf()


class WeeklyReportExporter:
    """Writes weekly report PDFs, never leaving a partial file behind."""

    def __init__(self, output_dir: Path, logger: Optional[TrackerLogger] = None):
        self.output_dir = Path(output_dir)
        self.logger = logger or TrackerLogger(verbose=False)
        self.generating = False

    def export(
        self, data: WeeklyReportData, filename: Optional[str] = None
    ) -> ActionResult:
        path = self.output_dir / (filename or data.filename)
        partial = path.with_name(path.name + ".part")
        self.generating = True
        try:
            pdf = render_pdf(render_html(ReportLayout.from_data(data)))
            self.output_dir.mkdir(parents=True, exist_ok=True)
            partial.write_bytes(pdf)
            partial.replace(path)
        except Exception as e:
            self.logger.error(f"PDF generation failed: {e}")
            if partial.exists():
                partial.unlink()
            return ActionResult.failed("Failed to generate the PDF report.")
        finally:
            self.generating = False

        self.logger.info(f"Report written to {path}")
        return ActionResult.ok(f"Report saved to {path}")
