from __future__ import annotations

import io

import pandas as pd

from .service import ReportData

ROW_COLUMNS = {
    "nip": "NIP",
    "name": "Nama",
    "department_name": "Unit Kerja",
    "attendance_date": "Tanggal",
    "check_in": "Masuk",
    "check_out": "Pulang",
    "worked_hours": "Jam Kerja",
    "status": "Status",
    "office_location": "Lokasi",
    "is_valid_location": "Lokasi Valid",
    "notes": "Catatan",
}

SUMMARY_COLUMNS = {
    "nip": "NIP",
    "name": "Nama",
    "department_name": "Unit Kerja",
    "present": "Hadir",
    "late": "Terlambat",
    "absent": "Alpa",
    "leave": "Cuti",
    "sick": "Sakit",
    "permission": "Izin",
    "total_hours": "Total Jam Kerja",
}


def _frame(items: list[dict], columns: dict) -> pd.DataFrame:
    df = pd.DataFrame(items, columns=list(columns))
    return df.rename(columns=columns)


def report_to_xlsx(report: ReportData) -> bytes:
    """Two sheets: daily rows and per-user totals. Written in memory."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        _frame(report.rows, ROW_COLUMNS).to_excel(writer, index=False, sheet_name="Kehadiran")
        _frame(report.summary, SUMMARY_COLUMNS).to_excel(writer, index=False, sheet_name="Rekap")
    return output.getvalue()


def export_filename(report: ReportData) -> str:
    return f"laporan_kehadiran_{report.start.isoformat()}_{report.end.isoformat()}.xlsx"
