"""
Proposal export to Word using python-docx
"""
from io import BytesIO
from decimal import Decimal

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt


def _add_section(document, heading: str, body):
    if not body:
        return
    document.add_heading(heading, level=2)
    for line in str(body).splitlines():
        document.add_paragraph(line)


def render_proposal_docx(proposal) -> bytes:
    """Render a proposal: client, scope, deliverables, timeline, budget and terms"""
    client = proposal.client_details or {}
    currency = proposal.currency or {}

    document = Document()
    document.styles['Normal'].font.size = Pt(11)

    title = document.add_heading(proposal.title, level=0)
    title.alignment = WD_ALIGN_PARAGRAPH.CENTER

    document.add_heading("Prepared For", level=2)
    client_table = document.add_table(rows=0, cols=2)
    for label, key in (("Name", "name"), ("Email", "email"), ("Phone", "phone"), ("Address", "address")):
        if client.get(key):
            cells = client_table.add_row().cells
            cells[0].text = label
            cells[1].text = str(client[key])

    _add_section(document, "Project Overview", proposal.description)
    _add_section(document, "Scope of Work", proposal.scope)

    if proposal.deliverables:
        document.add_heading("Deliverables", level=2)
        for deliverable in proposal.deliverables:
            document.add_paragraph(str(deliverable), style='List Bullet')

    _add_section(document, "Timeline", proposal.timeline)

    document.add_heading("Budget Estimate", level=2)
    budget = document.add_paragraph()
    budget.add_run(f"{currency.get('code', '')} {Decimal(proposal.budget_estimate or 0):,.2f}").bold = True

    _add_section(document, "Terms & Conditions", proposal.terms)

    buffer = BytesIO()
    document.save(buffer)
    return buffer.getvalue()
