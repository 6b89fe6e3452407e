"""
Typed errors raised by the ledger crud layer.

Every error carries a machine-readable ``code``, the HTTP ``status_code`` the
API boundary answers with, and an optional ``details`` list. The classes are
grouped by kind:

    LedgerError
    +-- LedgerValidationError      malformed or unbalanced input
    +-- StateError                 operation not valid for the entity state
    +-- MissingReferenceError      referenced entity does not exist
    +-- InactiveAccountReferenceError
    +-- PolicyError                business-rule gate (closed year, reason...)
    +-- ConcurrencyError           lost race; retried by utils.retry
    +-- InfrastructureError        store failure unrelated to business rules
"""


class LedgerError(Exception):
    code = "LEDGER_ERROR"
    status_code = 500

    def __init__(self, message, details=None):
        super().__init__(message)
        self.message = message
        self.details = details or []

    def to_dict(self):
        return {"error": self.code, "detail": self.message, "details": self.details}


# --- Validation ---------------------------------------------------------------

class LedgerValidationError(LedgerError):
    code = "VALIDATION_ERROR"
    status_code = 400


class UnbalancedEntryCompositionError(LedgerValidationError):
    code = "UNBALANCED_ENTRY_COMPOSITION"

    def __init__(self):
        super().__init__(
            "Journal entry must have at least one debit and one credit entry",
            details=[{"field": "items", "message": "at least one debit and one credit line required"}],
        )


class DebitCreditMismatchError(LedgerValidationError):
    code = "DEBIT_CREDIT_MISMATCH"

    def __init__(self, total_debit, total_credit):
        super().__init__(
            "Total debits must equal total credits",
            details=[{"field": "items", "total_debit": str(total_debit), "total_credit": str(total_credit)}],
        )
        self.total_debit = total_debit
        self.total_credit = total_credit


class DuplicateCodeError(LedgerValidationError):
    code = "DUPLICATE_CODE"


class InvalidDateRangeError(LedgerValidationError):
    code = "INVALID_DATE_RANGE"


class OverlappingFinancialYearError(LedgerValidationError):
    code = "OVERLAPPING_FINANCIAL_YEAR"


class AccountHierarchyError(LedgerValidationError):
    code = "ACCOUNT_HIERARCHY_ERROR"


# --- State --------------------------------------------------------------------

class StateError(LedgerError):
    code = "STATE_ERROR"
    status_code = 409


class InvalidStateTransitionError(StateError):
    code = "INVALID_STATE_TRANSITION"

    def __init__(self, entry_number, current_status, target_status):
        super().__init__(
            f"Cannot move journal entry {entry_number} from {current_status} to {target_status}"
        )
        self.current_status = current_status
        self.target_status = target_status


class EntryNotEditableError(StateError):
    code = "ENTRY_NOT_EDITABLE"

    def __init__(self, entry_number, current_status):
        super().__init__(f"Journal entry {entry_number} is {current_status} and can no longer be edited")
        self.current_status = current_status


class InvalidReversalTargetError(StateError):
    code = "INVALID_REVERSAL_TARGET"

    def __init__(self, entry_number, current_status):
        super().__init__(f"Cannot reverse a journal entry with status {current_status} ({entry_number})")
        self.current_status = current_status


class AccountInUseError(StateError):
    code = "ACCOUNT_IN_USE"


class FinancialYearInUseError(StateError):
    code = "FINANCIAL_YEAR_IN_USE"


class FinancialYearHasDraftsError(StateError):
    code = "FINANCIAL_YEAR_HAS_DRAFTS"


# --- References ---------------------------------------------------------------

class MissingReferenceError(LedgerError):
    code = "NOT_FOUND"
    status_code = 404


class AccountNotFoundError(MissingReferenceError):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ids):
        ids = sorted(account_ids) if isinstance(account_ids, (set, list, tuple)) else [account_ids]
        super().__init__(
            "One or more accounts not found" if len(ids) > 1 else f"Account with id {ids[0]} not found",
            details=[{"account_id": account_id} for account_id in ids],
        )
        self.account_ids = ids


class FinancialYearNotFoundError(MissingReferenceError):
    code = "FINANCIAL_YEAR_NOT_FOUND"

    def __init__(self, financial_year_id):
        super().__init__(f"Financial year {financial_year_id} not found")
        self.financial_year_id = financial_year_id


class JournalEntryNotFoundError(MissingReferenceError):
    code = "JOURNAL_ENTRY_NOT_FOUND"

    def __init__(self, entry_id):
        super().__init__(f"Journal entry {entry_id} not found")


class DepartmentNotFoundError(MissingReferenceError):
    code = "DEPARTMENT_NOT_FOUND"

    def __init__(self, department_id):
        super().__init__(f"Department {department_id} not found")


class HsnSacCodeNotFoundError(MissingReferenceError):
    code = "HSN_SAC_CODE_NOT_FOUND"

    def __init__(self, code):
        super().__init__(f"HSN/SAC code {code} not found")


class ServicePriceNotFoundError(MissingReferenceError):
    code = "SERVICE_PRICE_NOT_FOUND"


class PackagePriceNotFoundError(MissingReferenceError):
    code = "PACKAGE_PRICE_NOT_FOUND"


class InactiveAccountReferenceError(LedgerError):
    code = "INACTIVE_ACCOUNT_REFERENCE"
    status_code = 400

    def __init__(self, accounts):
        names = [account.account_name for account in accounts]
        super().__init__(
            f"The following accounts are inactive: {', '.join(names)}",
            details=[{"account_id": account.id, "account_name": account.account_name} for account in accounts],
        )


# --- Policy -------------------------------------------------------------------

class PolicyError(LedgerError):
    code = "POLICY_ERROR"
    status_code = 400


class FinancialYearClosedError(PolicyError):
    code = "FINANCIAL_YEAR_CLOSED"

    def __init__(self, year_name):
        super().__init__(f"Financial year {year_name} is closed")
        self.year_name = year_name


class DateOutsideFinancialYearError(PolicyError):
    code = "DATE_OUTSIDE_FINANCIAL_YEAR"

    def __init__(self, entry_date, financial_year):
        super().__init__(
            f"Date {entry_date} must be within financial year {financial_year.year_name} "
            f"({financial_year.start_date} to {financial_year.end_date})"
        )


class ReasonRequiredError(PolicyError):
    code = "REASON_REQUIRED"

    def __init__(self):
        super().__init__("Reason for reversal is required")


class PriceNotEffectiveError(PolicyError):
    code = "PRICE_NOT_EFFECTIVE"


# --- Concurrency / infrastructure ---------------------------------------------

class ConcurrencyError(LedgerError):
    code = "CONCURRENCY_CONFLICT"
    status_code = 409


class StaleEntryStateError(ConcurrencyError):
    """The entry changed status between the read and the compare-and-set."""
    code = "STALE_ENTRY_STATE"


class InfrastructureError(LedgerError):
    code = "INFRASTRUCTURE_ERROR"
    status_code = 503
