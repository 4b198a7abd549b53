from __future__ import annotations

import io
from datetime import date, datetime, timezone
from typing import Literal

import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from talent_quest.core.deps import require_admin
from talent_quest.db.session import get_async_session
from talent_quest.repositories.groups import GroupRepository
from talent_quest.repositories.guests import GuestRepository
from talent_quest.repositories.performances import PerformanceRepository
from talent_quest.repositories.singles import SingleRepository

ExportFormat = Literal["csv", "xlsx", "pdf"]

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
    dependencies=[Depends(require_admin)],
)


def _report_filename(name: str) -> str:
    return f"Maritime_Talent_Quest_{name}_{date.today().isoformat()}"


def _export_dataframe(
    df: pd.DataFrame,
    filename_base: str,
    export_format: str,
) -> StreamingResponse:
    """
    Convert DataFrame to the requested format and return a StreamingResponse.

    Supported formats:
      - csv: text/csv
      - xlsx: application/vnd.openxmlformats-officedocument.spreadsheetml.sheet
      - pdf: application/pdf (simple tabular rendering)
    """
    export_format = (export_format or "csv").lower()

    if export_format == "xlsx":
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Report")
        buffer.seek(0)
        headers = {"Content-Disposition": f'attachment; filename="{filename_base}.xlsx"'}
        return StreamingResponse(
            buffer,
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            headers=headers,
        )

    if export_format == "pdf":
        from reportlab.lib import colors
        from reportlab.lib.pagesizes import landscape, letter
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
        )
        styles = getSampleStyleSheet()
        generated = datetime.now(tz=timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
        elements: list = [Paragraph(f"{filename_base.replace('_', ' ')} ({generated})", styles["Title"])]

        data = [list(df.columns)] + df.fillna("").astype(str).values.tolist()
        table = Table(data, repeatRows=1)
        table.setStyle(
            TableStyle(
                [
                    ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.black),
                    ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, -1), 8),
                    ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                    ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
                ]
            )
        )
        elements.append(table)
        doc.build(elements)
        buffer.seek(0)
        headers = {"Content-Disposition": f'attachment; filename="{filename_base}.pdf"'}
        return StreamingResponse(buffer, media_type="application/pdf", headers=headers)

    # Default: CSV
    text = io.StringIO()
    df.to_csv(text, index=False)
    headers = {"Content-Disposition": f'attachment; filename="{filename_base}.csv"'}
    return StreamingResponse(io.BytesIO(text.getvalue().encode("utf-8")), media_type="text/csv", headers=headers)


# PUBLIC_INTERFACE
@router.get(
    "/guests",
    summary="Guest list export",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def guests_report(
    session: AsyncSession = Depends(get_async_session),
    format: ExportFormat = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    """Export every registered guest."""
    guests = await GuestRepository(session).all()
    df = pd.DataFrame(
        [
            {
                "Guest ID": g.guest_id,
                "Full Name": g.full_name,
                "Age": g.age,
                "Gender": g.gender,
                "Contact Number": g.contact_number,
                "Email": g.email,
                "Organization": g.organization,
                "Address": g.address,
                "Registered": g.registration_date.strftime("%Y-%m-%d %H:%M") if g.registration_date else None,
            }
            for g in guests
        ],
        columns=[
            "Guest ID", "Full Name", "Age", "Gender", "Contact Number",
            "Email", "Organization", "Address", "Registered",
        ],
    )
    return _export_dataframe(df, _report_filename("Guests"), format)


# PUBLIC_INTERFACE
@router.get(
    "/singles",
    summary="Single performances export",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def singles_report(
    session: AsyncSession = Depends(get_async_session),
    format: ExportFormat = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    """Export solo entries with their performer."""
    rows = await SingleRepository(session).list_with_students()
    acts = await PerformanceRepository(session).first_for_students(s.student_id for s, _ in rows if s.student_id)
    records = []
    for single, student in rows:
        act = acts.get(single.student_id) if single.student_id else None
        records.append(
            {
                "Single ID": single.single_id,
                "Performance Title": single.performance_title or "Untitled Performance",
                "Performer": student.full_name if student else "Not assigned",
                "School": student.school if student else None,
                "Email": student.email if student else None,
                "Performance Type": act.performance_type if act else None,
                "Duration": act.duration if act else None,
            }
        )
    df = pd.DataFrame(
        records,
        columns=["Single ID", "Performance Title", "Performer", "School", "Email", "Performance Type", "Duration"],
    )
    return _export_dataframe(df, _report_filename("Singles"), format)


# PUBLIC_INTERFACE
@router.get(
    "/groups",
    summary="Group performances export",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def groups_report(
    session: AsyncSession = Depends(get_async_session),
    format: ExportFormat = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    """Export groups, one row per member."""
    repo = GroupRepository(session)
    groups = await repo.list_groups()
    members = await repo.members_by_group(g.group_id for g in groups)
    records = []
    for group in groups:
        for member, student in members.get(group.group_id, []):
            records.append(
                {
                    "Group ID": group.group_id,
                    "Group Name": group.group_name,
                    "Performance Type": group.performance_type,
                    "Performance Title": group.performance_title,
                    "Member": student.full_name,
                    "Leader": "Yes" if member.is_leader else "No",
                    "School": student.school,
                    "Email": student.email,
                    "Contact Number": student.contact_number,
                }
            )
    df = pd.DataFrame(
        records,
        columns=[
            "Group ID", "Group Name", "Performance Type", "Performance Title",
            "Member", "Leader", "School", "Email", "Contact Number",
        ],
    )
    return _export_dataframe(df, _report_filename("Groups"), format)


# PUBLIC_INTERFACE
@router.get(
    "/talents",
    summary="Talent details export",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def talents_report(
    session: AsyncSession = Depends(get_async_session),
    format: ExportFormat = Query("csv", description="Export format: csv | xlsx | pdf"),
):
    """Export every performance with its student."""
    rows = await PerformanceRepository(session).all_with_students()
    df = pd.DataFrame(
        [
            {
                "Performance ID": p.performance_id,
                "Student": s.full_name,
                "School": s.school,
                "Course/Year": s.course_year,
                "Performance Type": p.performance_type,
                "Title": p.title,
                "Duration": p.duration,
                "Performers": p.num_performers,
            }
            for p, s in rows
        ],
        columns=[
            "Performance ID", "Student", "School", "Course/Year",
            "Performance Type", "Title", "Duration", "Performers",
        ],
    )
    return _export_dataframe(df, _report_filename("Talents"), format)
