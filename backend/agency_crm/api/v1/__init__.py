# API v1 Package
from agency_crm.api.v1 import auth, users, projects, invoices, proposals, dashboard

__all__ = [
    'auth',
    'users',
    'projects',
    'invoices',
    'proposals',
    'dashboard',
]
