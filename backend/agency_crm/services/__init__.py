# Services Package
from agency_crm.services.user_service import UserService
from agency_crm.services.project_service import ProjectService
from agency_crm.services.proposal_service import ProposalService
from agency_crm.services.invoice_service import InvoiceService
from agency_crm.services.dashboard_service import DashboardService
from agency_crm.services.sync_service import ReferenceSyncService

__all__ = [
    'UserService',
    'ProjectService',
    'ProposalService',
    'InvoiceService',
    'DashboardService',
    'ReferenceSyncService',
]
