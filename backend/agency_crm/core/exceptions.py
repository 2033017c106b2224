"""
Domain exceptions shared by services and routers
"""


class NotFoundError(Exception):
    """Raised when a referenced Project, Proposal, Invoice or User id does not resolve."""

    def __init__(self, resource: str, resource_id):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(f"{resource} not found with id {resource_id}")


class InvoiceValidationError(ValueError):
    """Raised when an invoice is missing fields required before it can be persisted."""
    pass


class PaymentValidationError(ValueError):
    """Raised when a payment record fails its method-specific field rules."""
    pass
