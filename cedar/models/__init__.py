"""
Data Models Package

This package contains all Pydantic models used in Cedar Budget.
All data flowing through the system must conform to these schemas.
"""

from cedar.models.transaction import (
    BudgetSummary,
    Category,
    CategoryTotal,
    Currency,
    ExpenseCategory,
    IncomeCategory,
    Transaction,
    TransactionCandidate,
    TransactionSource,
    TransactionType,
    ValidationIssue,
    ValidationResult,
    categories_for,
    lookup_category,
)
from cedar.models.chat import (
    AssistantMode,
    AssistantReply,
    ChatMessage,
    ChatSender,
    GroundingSource,
    ProposalStatus,
)
from cedar.models.media import (
    ImageQuality,
    ReceiptAssessment,
    ReceiptUpload,
    VideoAspectRatio,
    VideoStatus,
)
from cedar.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Transaction models
    "BudgetSummary",
    "Category",
    "CategoryTotal",
    "Currency",
    "ExpenseCategory",
    "IncomeCategory",
    "Transaction",
    "TransactionCandidate",
    "TransactionSource",
    "TransactionType",
    "ValidationIssue",
    "ValidationResult",
    "categories_for",
    "lookup_category",
    # Chat models
    "AssistantMode",
    "AssistantReply",
    "ChatMessage",
    "ChatSender",
    "GroundingSource",
    "ProposalStatus",
    # Media models
    "ImageQuality",
    "ReceiptAssessment",
    "ReceiptUpload",
    "VideoAspectRatio",
    "VideoStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
