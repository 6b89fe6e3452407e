import logging
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from sqlalchemy import func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models.chart_of_accounts import ChartOfAccounts, AccountType, DEBIT_NORMAL_TYPES
from models.journal_entry import JournalEntry, JournalEntryStatus
from models.journal_item import JournalItem
from schemas.chart_of_accounts import ChartOfAccountsCreate, ChartOfAccountsUpdate
from schemas.audit_log import AuditLogCreate
from crud.audit_log import record_audit_log
from crud.reference_data import get_department
from models.audit_mixin import ist_now
from utils import reject_cleared_fields, sqlalchemy_to_dict
from exceptions import (
    AccountHierarchyError,
    AccountInUseError,
    AccountNotFoundError,
    DuplicateCodeError,
    InactiveAccountReferenceError,
)

logger = logging.getLogger(__name__)

REQUIRED_ACCOUNT_FIELDS = ('account_code', 'account_name', 'is_active', 'opening_balance')

ZERO = Decimal("0")

DEFAULT_HOSPITAL_ACCOUNTS = [
    {"account_code": "1000", "account_name": "Cash", "account_type": AccountType.ASSET},
    {"account_code": "1010", "account_name": "Bank", "account_type": AccountType.ASSET},
    {"account_code": "1100", "account_name": "Accounts Receivable - Patients", "account_type": AccountType.ASSET},
    {"account_code": "1200", "account_name": "Pharmacy Inventory", "account_type": AccountType.ASSET},
    {"account_code": "2000", "account_name": "Accounts Payable", "account_type": AccountType.LIABILITY},
    {"account_code": "2100", "account_name": "GST Payable", "account_type": AccountType.LIABILITY},
    {"account_code": "3000", "account_name": "Capital", "account_type": AccountType.EQUITY},
    {"account_code": "4000", "account_name": "Patient Service Revenue", "account_type": AccountType.REVENUE},
    {"account_code": "4100", "account_name": "Pharmacy Sales", "account_type": AccountType.REVENUE},
    {"account_code": "5000", "account_name": "Medical Supplies Expense", "account_type": AccountType.EXPENSE},
    {"account_code": "6000", "account_name": "Operating Expenses", "account_type": AccountType.EXPENSE},
]


def signed_balance_delta(account_type: AccountType, debit_amount, credit_amount) -> Decimal:
    """
    Balance change produced by one journal line.

    ASSET and EXPENSE accounts grow with debits; LIABILITY, EQUITY and REVENUE
    accounts grow with credits. Reversals feed swapped amounts through the
    same function.
    """
    debit_amount = Decimal(debit_amount or 0)
    credit_amount = Decimal(credit_amount or 0)
    if account_type in DEBIT_NORMAL_TYPES:
        return debit_amount - credit_amount
    return credit_amount - debit_amount


def get_account(db: Session, account_id: int) -> ChartOfAccounts:
    account = db.query(ChartOfAccounts).filter(ChartOfAccounts.id == account_id).first()
    if not account:
        raise AccountNotFoundError(account_id)
    return account


def get_account_by_code(db: Session, account_code: str) -> Optional[ChartOfAccounts]:
    return db.query(ChartOfAccounts).filter(ChartOfAccounts.account_code == account_code).first()


def _flush_account(db: Session, account_code: str, account_id: int = None):
    """Flush pending account changes; losing a race for the code is a DuplicateCodeError."""
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        holder = get_account_by_code(db, account_code)
        if holder is not None and holder.id != account_id:
            raise DuplicateCodeError(f"Account with code {account_code} already exists")
        raise


def get_accounts(
    db: Session,
    account_type: AccountType = None,
    parent_id: int = None,
    is_active: bool = None,
    department_id: int = None,
    search: str = None,
):
    query = db.query(ChartOfAccounts)

    if account_type:
        query = query.filter(ChartOfAccounts.account_type == account_type)
    if parent_id is not None:
        query = query.filter(ChartOfAccounts.parent_account_id == parent_id)
    if is_active is not None:
        query = query.filter(ChartOfAccounts.is_active == is_active)
    if department_id is not None:
        query = query.filter(ChartOfAccounts.department_id == department_id)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            ChartOfAccounts.account_code.ilike(pattern),
            ChartOfAccounts.account_name.ilike(pattern),
        ))

    return query.order_by(ChartOfAccounts.account_code).all()


def get_account_tree(db: Session, account_type: AccountType = None, is_active: bool = None) -> List[dict]:
    """Accounts as nested nodes, roots first, children ordered by code."""
    accounts = get_accounts(db, account_type=account_type, is_active=is_active)
    nodes = {
        account.id: {
            "id": account.id,
            "account_code": account.account_code,
            "account_name": account.account_name,
            "account_type": account.account_type,
            "current_balance": account.current_balance,
            "is_active": account.is_active,
            "children": [],
        }
        for account in accounts
    }
    roots = []
    for account in accounts:
        parent = nodes.get(account.parent_account_id)
        # A filtered-out parent promotes the child to a root
        if parent is None:
            roots.append(nodes[account.id])
        else:
            parent["children"].append(nodes[account.id])
    return roots


def is_descendant(db: Session, ancestor_id: int, candidate_id: int) -> bool:
    """True when ``candidate_id`` sits somewhere below ``ancestor_id``."""
    frontier = [ancestor_id]
    seen = set()
    while frontier:
        child_ids = [
            row[0] for row in db.query(ChartOfAccounts.id)
            .filter(ChartOfAccounts.parent_account_id.in_(frontier))
            .all()
        ]
        if candidate_id in child_ids:
            return True
        seen.update(frontier)
        frontier = [child_id for child_id in child_ids if child_id not in seen]
    return False


def _validate_parent(db: Session, parent_account_id: int, account_type: AccountType, account_id: int = None):
    if account_id is not None:
        if parent_account_id == account_id:
            raise AccountHierarchyError("An account cannot be its own parent")
        if is_descendant(db, account_id, parent_account_id):
            raise AccountHierarchyError("Cannot set a child account as the parent")

    parent = db.query(ChartOfAccounts).filter(ChartOfAccounts.id == parent_account_id).first()
    if not parent:
        raise AccountNotFoundError(parent_account_id)
    if parent.account_type != account_type:
        raise AccountHierarchyError(
            f"Account type {account_type.value} is not compatible with parent account type {parent.account_type.value}"
        )
    return parent


def create_account(db: Session, account: ChartOfAccountsCreate, actor: str) -> ChartOfAccounts:
    if get_account_by_code(db, account.account_code):
        raise DuplicateCodeError(f"Account with code {account.account_code} already exists")
    if account.parent_account_id is not None:
        _validate_parent(db, account.parent_account_id, account.account_type)
    if account.department_id is not None:
        get_department(db, account.department_id)

    account_data = account.model_dump()
    db_account = ChartOfAccounts(
        **account_data,
        current_balance=account.opening_balance,
        created_by=actor,
    )
    db.add(db_account)
    _flush_account(db, account.account_code)

    record_audit_log(db, AuditLogCreate(
        table_name='chart_of_accounts',
        record_id=str(db_account.id),
        changed_by=actor,
        action='CREATE',
        old_values={},
        new_values=sqlalchemy_to_dict(db_account),
    ))
    db.commit()
    db.refresh(db_account)
    logger.info(f"Account {db_account.account_code} ({db_account.account_type.value}) created by {actor}")
    return db_account


def update_account(db: Session, account_id: int, account_update: ChartOfAccountsUpdate, actor: str) -> ChartOfAccounts:
    account = get_account(db, account_id)
    update_data = account_update.model_dump(exclude_unset=True)
    reject_cleared_fields(update_data, REQUIRED_ACCOUNT_FIELDS)
    old_values = sqlalchemy_to_dict(account)

    new_code = update_data.get('account_code')
    if new_code and new_code != account.account_code:
        duplicate = db.query(ChartOfAccounts).filter(
            ChartOfAccounts.account_code == new_code,
            ChartOfAccounts.id != account_id,
        ).first()
        if duplicate:
            raise DuplicateCodeError(f"Account with code {new_code} already exists")

    if update_data.get('parent_account_id') is not None:
        _validate_parent(db, update_data['parent_account_id'], account.account_type, account_id=account_id)

    if update_data.get('department_id') is not None:
        get_department(db, update_data['department_id'])

    if update_data.get('is_active') is False:
        _assert_can_deactivate(db, account)

    opening_balance = update_data.pop('opening_balance', None)
    if opening_balance is not None and opening_balance != account.opening_balance:
        # Shift the running balance by the same amount, in the store
        difference = Decimal(opening_balance) - Decimal(account.opening_balance)
        db.execute(
            update(ChartOfAccounts)
            .where(ChartOfAccounts.id == account_id)
            .values(
                opening_balance=opening_balance,
                current_balance=ChartOfAccounts.current_balance + difference,
            )
            .execution_options(synchronize_session=False)
        )
        db.expire(account, ['opening_balance', 'current_balance'])

    for key, value in update_data.items():
        setattr(account, key, value)
    account.updated_by = actor
    account.updated_at = ist_now()
    _flush_account(db, account.account_code, account_id=account.id)

    record_audit_log(db, AuditLogCreate(
        table_name='chart_of_accounts',
        record_id=str(account.id),
        changed_by=actor,
        action='UPDATE',
        old_values=old_values,
        new_values=sqlalchemy_to_dict(account),
    ))
    db.commit()
    db.refresh(account)
    return account


def _assert_can_deactivate(db: Session, account: ChartOfAccounts):
    active_children = db.query(ChartOfAccounts).filter(
        ChartOfAccounts.parent_account_id == account.id,
        ChartOfAccounts.is_active.is_(True),
    ).count()
    if active_children:
        raise AccountInUseError(
            "Cannot deactivate an account with child accounts. Deactivate child accounts first."
        )


def deactivate_account(db: Session, account_id: int, actor: str) -> ChartOfAccounts:
    """Soft delete. Posted history keeps pointing at the account."""
    account = get_account(db, account_id)
    _assert_can_deactivate(db, account)

    old_values = sqlalchemy_to_dict(account)
    account.is_active = False
    account.updated_by = actor
    account.updated_at = ist_now()
    db.flush()

    record_audit_log(db, AuditLogCreate(
        table_name='chart_of_accounts',
        record_id=str(account.id),
        changed_by=actor,
        action='DEACTIVATE',
        old_values=old_values,
        new_values=sqlalchemy_to_dict(account),
    ))
    db.commit()
    db.refresh(account)
    logger.info(f"Account {account.account_code} deactivated by {actor}")
    return account


def assert_accounts_active(db: Session, account_ids: Iterable[int]) -> Dict[int, ChartOfAccounts]:
    """
    Every id must resolve to an active account.

    Raises AccountNotFoundError listing the missing ids, or
    InactiveAccountReferenceError listing the inactive accounts.
    """
    wanted = set(account_ids)
    accounts = db.query(ChartOfAccounts).filter(ChartOfAccounts.id.in_(wanted)).all()
    found = {account.id: account for account in accounts}

    missing = wanted - set(found)
    if missing:
        raise AccountNotFoundError(missing)

    inactive = [account for account in accounts if not account.is_active]
    if inactive:
        raise InactiveAccountReferenceError(sorted(inactive, key=lambda a: a.account_code))
    return found


def apply_balance_delta(db: Session, account_id: int, debit_amount, credit_amount) -> Decimal:
    """
    Apply one journal line to the account's running balance.

    The update is a single ``current_balance = current_balance + delta``
    statement so concurrent postings to the same account never lose updates.
    Runs inside the caller's transaction; the caller commits or rolls back.
    """
    account_type = db.query(ChartOfAccounts.account_type).filter(ChartOfAccounts.id == account_id).scalar()
    if account_type is None:
        raise AccountNotFoundError(account_id)

    delta = signed_balance_delta(account_type, debit_amount, credit_amount)
    db.execute(
        update(ChartOfAccounts)
        .where(ChartOfAccounts.id == account_id)
        .values(current_balance=ChartOfAccounts.current_balance + delta)
        .execution_options(synchronize_session=False)
    )
    return db.query(ChartOfAccounts.current_balance).filter(ChartOfAccounts.id == account_id).scalar()


def reconcile_account(db: Session, account_id: int) -> dict:
    """Recompute the balance from posted history and compare with the running total."""
    account = get_account(db, account_id)
    debit_total, credit_total = db.query(
        func.coalesce(func.sum(JournalItem.debit_amount), 0),
        func.coalesce(func.sum(JournalItem.credit_amount), 0),
    ).join(JournalEntry, JournalItem.journal_entry_id == JournalEntry.id).filter(
        JournalItem.account_id == account_id,
        # A REVERSED entry was posted once; its reversal is a separate POSTED entry
        JournalEntry.status.in_([JournalEntryStatus.POSTED, JournalEntryStatus.REVERSED]),
    ).one()

    opening = Decimal(account.opening_balance or 0)
    computed = opening + signed_balance_delta(account.account_type, debit_total, credit_total)
    current = Decimal(account.current_balance or 0)
    difference = current - computed
    return {
        "account_id": account.id,
        "account_code": account.account_code,
        "opening_balance": opening,
        "current_balance": current,
        "computed_balance": computed,
        "difference": difference,
        "is_consistent": abs(difference) < Decimal("0.01"),
    }


def initialize_default_accounts(db: Session, actor: str) -> List[ChartOfAccounts]:
    """Seed the standard hospital chart. Existing codes are left untouched."""
    created = []
    for account_data in DEFAULT_HOSPITAL_ACCOUNTS:
        if get_account_by_code(db, account_data["account_code"]):
            continue
        logger.info(f"Seeding default account '{account_data['account_name']}' ({account_data['account_code']})")
        created.append(create_account(db, ChartOfAccountsCreate(**account_data), actor))
    return created
