"""Spreadsheet export of a class's grade matrix."""

import io
import logging
from datetime import datetime
from typing import Dict, List, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter

from models.class_model import ClassModel
from utils.archive import sanitize_name
from utils.time_utils import parse_iso

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

HEADER_FONT = Font(bold=True)
HEADER_FILL = PatternFill(start_color="CCCCCC", end_color="CCCCCC", fill_type="solid")


def _style_header(ws, row: int) -> None:
    for cell in ws[row]:
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL


def _percent(value: float) -> str:
    return f"{value:.1f}%"


def export_filename(class_model: ClassModel, today: datetime) -> str:
    return (
        f"{sanitize_name(class_model.name)}_{sanitize_name(class_model.code)}"
        f"_Grades_{today.strftime('%Y-%m-%d')}.xlsx"
    )


def build_grades_workbook(class_model: ClassModel) -> bytes:
    """Render the class grade matrix as an xlsx file.

    Sheet "Grades" has one row per rostered student with one column per
    assignment; ungraded or missing submissions count as zero. Sheet
    "Assignment Details" summarizes each assignment.
    """
    assignments = sorted(class_model.assignments, key=lambda a: a.created_at)
    students = list(class_model.students)
    marks: Dict[Tuple[str, str], float] = {}
    for assignment in assignments:
        for submission in assignment.submissions:
            marks[(submission.student_id, assignment.assignment_id)] = submission.marks or 0

    wb = Workbook()
    ws = wb.active
    ws.title = "Grades"
    ws.append(
        ["Student Name", "Email"]
        + [a.title for a in assignments]
        + ["Total Points", "Average %"]
    )
    _style_header(ws, 1)

    max_possible = sum(a.max_marks for a in assignments)
    percentages: List[float] = []
    for student in students:
        row_marks = [marks.get((student.user_id, a.assignment_id), 0) for a in assignments]
        total = sum(row_marks)
        percent = (total / max_possible) * 100 if max_possible else 0.0
        percentages.append(percent)
        ws.append([student.name, student.email] + row_marks + [total, _percent(percent)])

    ws.append([])
    ws.append(["SUMMARY STATISTICS"])
    ws.cell(row=ws.max_row, column=1).font = HEADER_FONT
    ws.append(["Total Students:", len(students)])
    ws.append(["Total Assignments:", len(assignments)])
    if students and assignments:
        ws.append(["Class Average:", _percent(sum(percentages) / len(percentages))])
        ws.append(["Highest Grade:", _percent(max(percentages))])
        ws.append(["Lowest Grade:", _percent(min(percentages))])

    widths = [20, 25] + [15] * len(assignments) + [12, 12]
    for col_idx, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width

    details = wb.create_sheet("Assignment Details")
    details.append(["Assignment Details"])
    details.cell(row=1, column=1).font = HEADER_FONT
    details.append(["Assignment Title", "Max Marks", "Due Date", "Submissions", "Average Grade"])
    _style_header(details, 2)
    for assignment in assignments:
        submissions = assignment.submissions
        average = (
            sum(s.marks or 0 for s in submissions) / len(submissions) if submissions else 0.0
        )
        details.append(
            [
                assignment.title,
                assignment.max_marks,
                parse_iso(assignment.deadline).strftime("%Y-%m-%d"),
                len(submissions),
                round(average, 1),
            ]
        )
    for col_idx, width in enumerate([30, 12, 14, 12, 14], start=1):
        details.column_dimensions[get_column_letter(col_idx)].width = width

    buffer = io.BytesIO()
    wb.save(buffer)
    logger.info(
        "Exported grades for class %s: %d student(s), %d assignment(s)",
        class_model.class_id,
        len(students),
        len(assignments),
    )
    return buffer.getvalue()
