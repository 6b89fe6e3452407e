import logging
import math
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from models.chart_of_accounts import AccountType, ChartOfAccounts, DEBIT_NORMAL_TYPES
from models.journal_entry import JournalEntry, JournalEntryStatus
from models.journal_item import JournalItem
from models.audit_mixin import ist_now
from crud.chart_of_accounts import get_account, signed_balance_delta
from crud.financial_year import get_financial_year
from schemas.common import Pagination
from schemas.ledger import (
    AccountLedger,
    AccountLedgerEntry,
    LedgerAccount,
    LedgerFinancialYear,
    TrialBalance,
    TrialBalanceGroup,
    TrialBalanceLine,
)
from exceptions import DateOutsideFinancialYearError, InvalidDateRangeError

logger = logging.getLogger(__name__)

# Entries whose lines have moved balances. A REVERSED entry was posted once;
# its reversal is a separate POSTED entry.
BALANCE_BEARING_STATUSES = (JournalEntryStatus.POSTED, JournalEntryStatus.REVERSED)

ZERO = Decimal("0")
BALANCE_TOLERANCE = Decimal("0.01")


def _posted_lines(db: Session, account_id: int = None):
    query = db.query(JournalItem).join(JournalEntry, JournalItem.journal_entry_id == JournalEntry.id).filter(
        JournalEntry.status.in_(BALANCE_BEARING_STATUSES)
    )
    if account_id is not None:
        query = query.filter(JournalItem.account_id == account_id)
    return query


def _sum_lines(query):
    debit_total, credit_total = query.with_entities(
        func.coalesce(func.sum(JournalItem.debit_amount), 0),
        func.coalesce(func.sum(JournalItem.credit_amount), 0),
    ).one()
    return Decimal(debit_total), Decimal(credit_total)


def _year_summary(financial_year) -> LedgerFinancialYear:
    return LedgerFinancialYear(
        id=financial_year.id,
        year_name=financial_year.year_name,
        start_date=financial_year.start_date,
        end_date=financial_year.end_date,
    )


def get_account_ledger(
    db: Session,
    account_id: int,
    financial_year_id: Optional[int] = None,
    from_date: Optional[date] = None,
    to_date: Optional[date] = None,
    page: int = 1,
    limit: int = 50,
) -> AccountLedger:
    """
    Statement of one account: every posted line in the period with a running balance.

    The opening balance is the account's opening balance plus all posted
    activity dated before the period starts (``from_date`` or the financial
    year's start, whichever is later). Running balances on later pages carry
    the lines of the earlier pages. Totals and the closing balance cover the
    whole period, not just the page.
    """
    account = get_account(db, account_id)
    financial_year = get_financial_year(db, financial_year_id) if financial_year_id else None
    if from_date and to_date and from_date > to_date:
        raise InvalidDateRangeError("from_date cannot be after to_date")

    starts = [d for d in (from_date, financial_year.start_date if financial_year else None) if d is not None]
    period_start = max(starts) if starts else None

    opening = Decimal(account.opening_balance or 0)
    if period_start is not None:
        prior_debit, prior_credit = _sum_lines(
            _posted_lines(db, account_id).filter(JournalEntry.entry_date < period_start)
        )
        opening += signed_balance_delta(account.account_type, prior_debit, prior_credit)

    lines = _posted_lines(db, account_id)
    if financial_year:
        lines = lines.filter(JournalEntry.financial_year_id == financial_year.id)
    if from_date:
        lines = lines.filter(JournalEntry.entry_date >= from_date)
    if to_date:
        lines = lines.filter(JournalEntry.entry_date <= to_date)

    total = lines.count()
    period_debit, period_credit = _sum_lines(lines)
    ordering = (JournalEntry.entry_date, JournalEntry.id, JournalItem.id)
    offset = (page - 1) * limit

    running = opening
    if offset:
        earlier = lines.with_entities(
            JournalItem.debit_amount.label("debit_amount"),
            JournalItem.credit_amount.label("credit_amount"),
        ).order_by(*ordering).limit(offset).subquery()
        earlier_debit, earlier_credit = db.query(
            func.coalesce(func.sum(earlier.c.debit_amount), 0),
            func.coalesce(func.sum(earlier.c.credit_amount), 0),
        ).one()
        running += signed_balance_delta(account.account_type, earlier_debit, earlier_credit)

    entries = []
    for item, entry in lines.add_entity(JournalEntry).order_by(*ordering).offset(offset).limit(limit).all():
        running += signed_balance_delta(account.account_type, item.debit_amount, item.credit_amount)
        entries.append(AccountLedgerEntry(
            journal_entry_id=entry.id,
            entry_number=entry.entry_number,
            entry_date=entry.entry_date,
            status=entry.status,
            reference=entry.reference,
            reference_type=entry.reference_type,
            description=item.description or entry.description,
            debit=item.debit_amount,
            credit=item.credit_amount,
            balance=running,
        ))

    return AccountLedger(
        account=LedgerAccount(
            id=account.id,
            account_code=account.account_code,
            account_name=account.account_name,
            account_type=account.account_type,
            current_balance=account.current_balance,
        ),
        financial_year=_year_summary(financial_year) if financial_year else None,
        from_date=from_date,
        to_date=to_date,
        opening_balance=opening,
        closing_balance=opening + signed_balance_delta(account.account_type, period_debit, period_credit),
        total_debits=period_debit,
        total_credits=period_credit,
        entries=entries,
        pagination=Pagination(total=total, page=page, limit=limit, pages=math.ceil(total / limit)),
    )


def _split_balance(account_type: AccountType, balance: Decimal):
    """(debit column, credit column) for a signed balance."""
    debit_normal = account_type in DEBIT_NORMAL_TYPES
    if balance >= 0:
        return (balance, ZERO) if debit_normal else (ZERO, balance)
    return (ZERO, -balance) if debit_normal else (-balance, ZERO)


def _totals_by_account(db: Session, *conditions):
    rows = db.query(
        JournalItem.account_id,
        func.coalesce(func.sum(JournalItem.debit_amount), 0),
        func.coalesce(func.sum(JournalItem.credit_amount), 0),
    ).join(JournalEntry, JournalItem.journal_entry_id == JournalEntry.id).filter(
        JournalEntry.status.in_(BALANCE_BEARING_STATUSES),
        *conditions,
    ).group_by(JournalItem.account_id).all()
    return {account_id: (Decimal(debit), Decimal(credit)) for account_id, debit, credit in rows}


def get_trial_balance(
    db: Session,
    financial_year_id: int,
    as_of_date: Optional[date] = None,
    exclude_zero_balances: bool = False,
) -> TrialBalance:
    """
    Trial balance of the active accounts as of ``as_of_date``.

    ``as_of_date`` must fall inside the financial year; it defaults to today,
    capped at the year's end. Each balance is the opening balance plus all
    posted activity up to the cutoff, shown in the debit or credit column.
    """
    financial_year = get_financial_year(db, financial_year_id)
    if as_of_date is None:
        as_of_date = min(max(ist_now().date(), financial_year.start_date), financial_year.end_date)
    elif not financial_year.start_date <= as_of_date <= financial_year.end_date:
        raise DateOutsideFinancialYearError(as_of_date, financial_year)

    to_date_totals = _totals_by_account(db, JournalEntry.entry_date <= as_of_date)
    period_totals = _totals_by_account(
        db,
        JournalEntry.entry_date <= as_of_date,
        JournalEntry.financial_year_id == financial_year.id,
    )

    type_order = {account_type: position for position, account_type in enumerate(AccountType)}
    accounts = sorted(
        db.query(ChartOfAccounts).filter(ChartOfAccounts.is_active.is_(True)).all(),
        key=lambda account: (type_order[account.account_type], account.account_code),
    )

    lines = []
    for account in accounts:
        debit_total, credit_total = to_date_totals.get(account.id, (ZERO, ZERO))
        balance = Decimal(account.opening_balance or 0) + signed_balance_delta(
            account.account_type, debit_total, credit_total
        )
        if exclude_zero_balances and balance == 0:
            continue
        debit_balance, credit_balance = _split_balance(account.account_type, balance)
        period_debit, period_credit = period_totals.get(account.id, (ZERO, ZERO))
        lines.append(TrialBalanceLine(
            account_id=account.id,
            account_code=account.account_code,
            account_name=account.account_name,
            account_type=account.account_type,
            opening_balance=account.opening_balance,
            period_debits=period_debit,
            period_credits=period_credit,
            balance=balance,
            debit_balance=debit_balance,
            credit_balance=credit_balance,
        ))

    groups = []
    for account_type in AccountType:
        of_type = [line for line in lines if line.account_type == account_type]
        if of_type:
            groups.append(TrialBalanceGroup(
                account_type=account_type,
                total_debit_balance=sum((line.debit_balance for line in of_type), ZERO),
                total_credit_balance=sum((line.credit_balance for line in of_type), ZERO),
            ))

    total_debit_balance = sum((line.debit_balance for line in lines), ZERO)
    total_credit_balance = sum((line.credit_balance for line in lines), ZERO)
    is_balanced = abs(total_debit_balance - total_credit_balance) < BALANCE_TOLERANCE
    if not is_balanced:
        logger.warning(
            f"Trial balance for {financial_year.year_name} as of {as_of_date} is out by "
            f"{total_debit_balance - total_credit_balance}"
        )

    return TrialBalance(
        financial_year=_year_summary(financial_year),
        as_of_date=as_of_date,
        lines=lines,
        groups=groups,
        total_debit_balance=total_debit_balance,
        total_credit_balance=total_credit_balance,
        is_balanced=is_balanced,
    )
