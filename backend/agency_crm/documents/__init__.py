# Document exports
from agency_crm.documents.invoice_pdf import render_invoice_pdf
from agency_crm.documents.proposal_docx import render_proposal_docx

__all__ = [
    'render_invoice_pdf',
    'render_proposal_docx',
]
