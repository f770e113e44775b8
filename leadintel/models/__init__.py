"""
Database models - import all models here so Alembic can discover them.
"""
from leadintel.models.lead_source import LeadSource
from leadintel.models.lead_identity import LeadIdentity
from leadintel.models.lead import Lead
from leadintel.models.lead_event import LeadEvent
from leadintel.models.credit_ledger import CreditLedgerEntry

__all__ = [
    "LeadSource",
    "LeadIdentity",
    "Lead",
    "LeadEvent",
    "CreditLedgerEntry",
]
