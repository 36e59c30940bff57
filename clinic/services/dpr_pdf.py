"""Render the daily performance report as an A4 PDF."""
from __future__ import annotations

from io import BytesIO

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

KPI_LABELS = [
    ('totalOPDAppointments', 'OPD Appointments'),
    ('totalIPDAdmissions', 'IPD Admissions'),
    ('totalDischarges', 'Discharges'),
    ('newPatientRegistrations', 'New Registrations'),
    ('bedOccupancyRate', 'Bed Occupancy (%)'),
    ('doctorsOnDuty', 'Doctors On Duty'),
    ('emergencyCases', 'Emergency Cases'),
    ('totalRevenue', 'Total Revenue (Rs)'),
]

GRID = TableStyle([
    ('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#0f766e')),
    ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
    ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
    ('GRID', (0, 0), (-1, -1), 0.5, colors.grey),
    ('ALIGN', (1, 0), (-1, -1), 'RIGHT'),
    ('FONTSIZE', (0, 0), (-1, -1), 9),
])


def _money(value) -> str:
    return f"{float(value or 0):,.2f}"


def _table(rows: list[list], widths: list[float]) -> Table:
    t = Table(rows, colWidths=widths, hAlign='LEFT')
    t.setStyle(GRID)
    return t


def render_dpr(report: dict) -> bytes:
    buf = BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        rightMargin=2 * cm, leftMargin=2 * cm,
        topMargin=1.5 * cm, bottomMargin=1.5 * cm,
        title=f"DPR {report['date']}",
    )
    styles = getSampleStyleSheet()
    heading = ParagraphStyle('heading', parent=styles['Heading3'], spaceBefore=10, spaceAfter=6)
    story = [
        Paragraph(report.get('hospital') or 'Hospital', styles['Title']),
        Paragraph(f"Daily Performance Report: {report['date']}", styles['Heading2']),
        Spacer(1, 12),
    ]

    kpis = report['kpis']
    rows = [['Indicator', 'Value']]
    for key, label in KPI_LABELS:
        value = kpis.get(key, 0)
        rows.append([label, _money(value) if key == 'totalRevenue' else str(value)])
    story += [Paragraph('Key Indicators', heading), _table(rows, [9 * cm, 5 * cm])]

    stats = report['patientStats']
    rows = [['Patients', 'Count']] + [[k, str(v)] for k, v in (
        ('OPD', stats['opd']), ('IPD admissions', stats['ipd']), ('OT procedures', stats['ot']),
        ('Discharges', stats['discharges']), ('Deaths', stats['deaths']),
        ('Active admissions', stats['activeAdmissions']),
    )]
    story += [Paragraph('Patient Statistics', heading), _table(rows, [9 * cm, 5 * cm])]

    rev = report['revenueData']
    rows = [['Revenue', 'Amount (Rs)']] + [[label, _money(rev[key])] for key, label in (
        ('opd', 'OPD'), ('ipd', 'IPD (net of refunds)'), ('cash', 'Cash'),
        ('online', 'Online'), ('refunds', 'Refunds'), ('total', 'Total'),
    )]
    story += [Paragraph('Revenue', heading), _table(rows, [9 * cm, 5 * cm])]

    beds = report['bedManagement']
    if beds:
        rows = [['Ward', 'Total', 'Occupied', 'Available', 'Occupancy %']]
        rows += [[b['ward'], b['total'], b['occupied'], b['available'], b['occupancyRate']] for b in beds]
        story += [Paragraph('Bed Management', heading), _table(rows, [5 * cm, 2.5 * cm, 2.5 * cm, 2.5 * cm, 3 * cm])]

    consults = report.get('doctorConsultations') or []
    if consults:
        rows = [['Doctor', 'Consultations']] + [[c['doctor'], c['count']] for c in consults]
        story += [Paragraph('Doctor Consultations', heading), _table(rows, [9 * cm, 5 * cm])]

    doc.build(story)
    return buf.getvalue()
