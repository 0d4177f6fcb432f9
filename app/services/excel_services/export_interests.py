from io import BytesIO

from fastapi.responses import StreamingResponse
from openpyxl import Workbook # type: ignore
from openpyxl.utils import get_column_letter # type: ignore
from sqlalchemy.orm import Session

from app.schemas.auth_schema import CurrentUser
from app.services import course_interest_service
from app.crud import announcement_crud

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def export_interests(db: Session, announcement_id: int, current_user: CurrentUser) -> StreamingResponse:
    """
    Export the interests of a course announcement to Excel:
    - A1: announcement title, A2: course name and start date
    - A4-H4: header, then a per-level summary below the rows
    - one row per interested user, newest first
    """
    interests = course_interest_service.get_interests_by_announcement(db, announcement_id, current_user)
    announcement = announcement_crud.get_announcement(db, announcement_id)
    summary = course_interest_service.get_interest_summary(db, announcement_id)

    wb = Workbook()
    ws = wb.active
    ws.title = "Interests"

    ws["A1"] = f"Announcement: {announcement.title}"
    start = announcement.course_start_date.strftime("%d/%m/%Y") if announcement.course_start_date else ""
    ws["A2"] = f"Course: {announcement.course_name or ''}"
    ws["D2"] = f"Start date: {start}"

    headers = ["No.", "First name", "Last name", "Email", "Role", "Interest level", "Message", "Date"]
    for col, title in enumerate(headers, start=1):
        ws.cell(row=4, column=col, value=title)

    for idx, interest in enumerate(interests, start=1):
        row = 4 + idx
        ws.cell(row=row, column=1, value=idx)
        ws.cell(row=row, column=2, value=interest.first_name)
        ws.cell(row=row, column=3, value=interest.last_name)
        ws.cell(row=row, column=4, value=interest.email)
        ws.cell(row=row, column=5, value=interest.role.value if interest.role else "")
        ws.cell(row=row, column=6, value=interest.interest_level.value)
        ws.cell(row=row, column=7, value=interest.message or "")
        ws.cell(row=row, column=8, value=interest.created_at.strftime("%d/%m/%Y %H:%M") if interest.created_at else "")

    summary_row = 6 + len(interests)
    ws.cell(row=summary_row, column=1, value="Summary")
    for offset, (level, count) in enumerate(summary.items(), start=1):
        ws.cell(row=summary_row + offset, column=1, value=level)
        ws.cell(row=summary_row + offset, column=2, value=count)

    # Fit column width to content
    for col in range(1, ws.max_column + 1):
        col_letter = get_column_letter(col)
        max_length = max((len(str(cell.value)) for cell in ws[col_letter] if cell.value is not None), default=0)
        ws.column_dimensions[col_letter].width = max_length + 2

    stream = BytesIO()
    wb.save(stream)
    stream.seek(0)

    filename = f"announcement_{announcement_id}_interests.xlsx"
    return StreamingResponse(
        stream,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
