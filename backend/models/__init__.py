from models.reference_data import Department, HsnSacCode
from models.chart_of_accounts import ChartOfAccounts, AccountType
from models.financial_year import FinancialYear, FinancialYearStatus
from models.journal_entry import JournalEntry, JournalEntryStatus
from models.journal_item import JournalItem
from models.entry_sequence import EntrySequence
from models.price_list import ServicePriceList, PackagePriceList, PackageItem, GstRateType
from models.audit_log import AuditLog

__all__ = ['AccountType', 'AuditLog', 'ChartOfAccounts', 'Department', 'EntrySequence', 'FinancialYear', 'FinancialYearStatus', 'GstRateType', 'HsnSacCode', 'JournalEntry', 'JournalEntryStatus', 'JournalItem', 'PackageItem', 'PackagePriceList', 'ServicePriceList',]
