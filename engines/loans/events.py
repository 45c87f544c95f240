"""
RMS Loans Engine — Change Types and Write Builders
=====================================================
Engine: Loans

Entries are written at their own path so a commit never rewrites
another entry's amount.
"""

from __future__ import annotations

from core.commands.base import Command
from engines.loans.commands import LOANS_CUSTOMER_ADD_REQUEST, LOANS_ENTRY_ADD_REQUEST
from engines.loans.models import LoanCustomer, LoanEntry


# ══════════════════════════════════════════════════════════════
# CHANGE TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

LOANS_CUSTOMER_ADDED_V1 = "loans.customer.added.v1"
LOANS_ENTRY_RECORDED_V1 = "loans.entry.recorded.v1"

COMMAND_TO_CHANGE_TYPE = {
    LOANS_CUSTOMER_ADD_REQUEST: LOANS_CUSTOMER_ADDED_V1,
    LOANS_ENTRY_ADD_REQUEST: LOANS_ENTRY_RECORDED_V1,
}


def resolve_loans_change_type(command_type: str) -> str | None:
    return COMMAND_TO_CHANGE_TYPE.get(command_type)


# ══════════════════════════════════════════════════════════════
# WRITE BUILDERS
# ══════════════════════════════════════════════════════════════

def build_customer_added_writes(command: Command, customer_id: str) -> dict:
    customer = LoanCustomer(
        id=customer_id,
        name=command.payload["name"],
        phone=command.payload["phone"],
    )
    return {f"loans/{customer_id}": customer.to_snapshot()}


def build_entry_recorded_writes(customer_id: str, entry: LoanEntry) -> dict:
    return {f"loans/{customer_id}/loans/{entry.id}": entry.to_snapshot()}
