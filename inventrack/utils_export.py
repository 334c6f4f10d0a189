from io import StringIO, BytesIO
from flask import Response
from openpyxl import Workbook
import csv

SIGNATURE_LINE = "__________________"


def signoff_footer(export_date, prepared_by):
    """Rows appended under the CSV table for the printed sign-off sheet."""
    return [
        [],
        [],
        ["Export Date:", export_date],
        ["Prepared By:", prepared_by],
        [],
        ["Manager Approval:", SIGNATURE_LINE],
        [],
        ["Audit Checked:", SIGNATURE_LINE],
    ]


def stream_csv(filename, headers, rows, footer=None):
    buf = StringIO()
    w = csv.writer(buf)
    if headers: w.writerow(headers)
    for r in rows:
        w.writerow(r)
    for r in footer or ():
        w.writerow(r)
    data = buf.getvalue().encode("utf-8-sig")
    return Response(data, mimetype="text/csv",
                    headers={"Content-Disposition": f"attachment; filename={filename}"} )


def stream_xlsx(filename, headers, rows, title="Inventory"):
    wb = Workbook()
    ws = wb.active
    ws.title = title
    if headers:
        ws.append(headers)
    for r in rows:
        ws.append(list(r))
    bio = BytesIO()
    wb.save(bio)
    return Response(bio.getvalue(),
                    mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
                    headers={"Content-Disposition": f"attachment; filename={filename}"} )
