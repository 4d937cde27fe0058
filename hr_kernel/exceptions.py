"""
Typed Exception Hierarchy for the HR kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Approval flows move money (loans, payroll) and leave balances.  Callers
must be able to tell "nobody is configured to approve this" apart from
"you are not the approver" apart from "somebody already approved it"
without parsing messages.  Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE attribute (machine-readable, API-safe)
  3. Structured DATA attributes (request type, level, employee numbers)

Example:

    try:
        leave_service.approve(leave_id, approver_no=42, acting_level=1)
    except ApprovalAlreadyProcessedError as e:
        api_response(code=e.code, entity=e.entity_id)
    except UnauthorizedApproverError as e:
        api_response(code=e.code, expected=e.expected_approver)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    HrKernelError (base)
    |
    +-- ApprovalError
    |   +-- ApprovalConfigNotFoundError
    |   |   +-- ApprovalLevelNotConfiguredError
    |   +-- NoApproverResolvedError
    |   +-- UnauthorizedApproverError
    |   +-- ApprovalAlreadyProcessedError
    |   +-- RejectionReasonRequiredError
    |   +-- UnknownRequestTypeError
    |
    +-- EntityNotFoundError
    |
    +-- BusinessRuleError
    |   +-- InsufficientLeaveBalanceError
    |   +-- InvalidLeaveRequestError
    |   +-- InvalidLoanRequestError
    |   +-- ActiveLoanExistsError
    |   +-- InvalidPostponementError
    |   +-- InvalidAllowanceError
    |   +-- DuplicatePayrollError
    |   +-- InvalidLaborRequestError
    |   +-- InvalidTransferError
    |   +-- AttendanceAlreadyExistsError
    |
    +-- ConfigError
    |   +-- ChainConfigValidationError
    |
    +-- BatchError
        +-- BatchJobNotFoundError
        +-- BatchAlreadyRunningError
        +-- BatchIdempotencyError
        +-- TaskNotRegisteredError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                          | When Raised
-----------|-------------------------------|--------------------------------------
Approval   | APPROVAL_CONFIG_NOT_FOUND     | No chain registered for request type
           | APPROVAL_LEVEL_NOT_CONFIGURED | Current level missing from the chain
           | NO_APPROVER_RESOLVED          | Rule cannot produce an employee
           | UNAUTHORIZED_APPROVER         | Actor is not the expected approver
           | APPROVAL_ALREADY_PROCESSED    | Request no longer pending at that level
           | REJECTION_REASON_REQUIRED     | Reject called with a blank reason
           | UNKNOWN_REQUEST_TYPE          | Request type string not in the enum
-----------|-------------------------------|--------------------------------------
Entity     | ENTITY_NOT_FOUND              | Lookup by id/number found nothing
-----------|-------------------------------|--------------------------------------
Business   | INSUFFICIENT_LEAVE_BALANCE    | Leave days exceed remaining balance
           | INVALID_LEAVE_REQUEST         | Bad leave dates / day count
           | INVALID_LOAN_REQUEST          | Amount or installments out of range
           | ACTIVE_LOAN_EXISTS            | Employee already has an open loan
           | INVALID_POSTPONEMENT          | Installment paid / date not later
           | INVALID_ALLOWANCE             | Type code or amount out of range
           | DUPLICATE_PAYROLL             | Payroll already exists for the month
           | INVALID_LABOR_REQUEST         | Quantity or date range invalid
           | INVALID_TRANSFER              | Same project / not assigned to source
           | ATTENDANCE_ALREADY_EXISTS     | Attendance row exists for that date
-----------|-------------------------------|--------------------------------------
Config     | CHAIN_CONFIG_INVALID          | Chain set failed startup validation
-----------|-------------------------------|--------------------------------------
Batch      | BATCH_JOB_NOT_FOUND           | Unknown batch job id
           | BATCH_ALREADY_RUNNING         | Execute on a job that is not pending
           | BATCH_IDEMPOTENCY_CONFLICT    | Idempotency key reused
           | TASK_NOT_REGISTERED           | Unknown batch task type

===============================================================================
DESIGN DECISIONS
===============================================================================

1. ``ApprovalLevelNotConfiguredError`` subclasses
   ``ApprovalConfigNotFoundError``: both mean the configuration cannot
   answer a question it is required to answer.  A missing *next* level is
   not an error at all; it is how a chain ends.

2. ``ApprovalAlreadyProcessedError`` is raised by callers, never by the
   engine.  The engine has no persistence and cannot observe races.
"""

from __future__ import annotations

from typing import Any


class HrKernelError(Exception):
    """Base exception for all HR kernel errors."""

    code: str = "HR_KERNEL_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


# =============================================================================
# Approval errors
# =============================================================================


class ApprovalError(HrKernelError):
    """Base for approval workflow errors."""

    code: str = "APPROVAL_ERROR"


class ApprovalConfigNotFoundError(ApprovalError):
    """No approval chain is registered for the request type."""

    code: str = "APPROVAL_CONFIG_NOT_FOUND"

    def __init__(self, request_type: str, message: str | None = None):
        self.request_type = request_type
        super().__init__(
            message or f"No approval chain configured for request type {request_type}"
        )


class ApprovalLevelNotConfiguredError(ApprovalConfigNotFoundError):
    """The level a request claims to be at does not exist in its chain."""

    code: str = "APPROVAL_LEVEL_NOT_CONFIGURED"

    def __init__(self, request_type: str, level: int):
        self.level = level
        super().__init__(
            request_type,
            f"Level {level} is not configured for request type {request_type}",
        )


class NoApproverResolvedError(ApprovalError):
    """An approver rule could not produce a concrete employee."""

    code: str = "NO_APPROVER_RESOLVED"

    def __init__(
        self,
        rule_kind: str,
        request_type: str,
        reason: str,
        department_code: int | None = None,
        project_code: int | None = None,
    ):
        self.rule_kind = rule_kind
        self.request_type = request_type
        self.reason = reason
        self.department_code = department_code
        self.project_code = project_code
        super().__init__(
            f"Cannot resolve approver for {request_type} using {rule_kind}: {reason}"
        )


class UnauthorizedApproverError(ApprovalError):
    """The acting employee is not the expected approver."""

    code: str = "UNAUTHORIZED_APPROVER"

    def __init__(
        self,
        request_type: str,
        level: int | None,
        approver_no: int | None,
        expected_approver: int | None,
    ):
        self.request_type = request_type
        self.level = level
        self.approver_no = approver_no
        self.expected_approver = expected_approver
        super().__init__(
            f"Employee {approver_no} may not approve {request_type} at level "
            f"{level} (expected {expected_approver})"
        )


class ApprovalAlreadyProcessedError(ApprovalError):
    """The request is no longer pending at the level the caller acted on."""

    code: str = "APPROVAL_ALREADY_PROCESSED"

    def __init__(
        self,
        entity_type: str,
        entity_id: str,
        trans_status: str | None = None,
        current_level: int | None = None,
    ):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.trans_status = trans_status
        self.current_level = current_level
        super().__init__(
            f"{entity_type} {entity_id} was already processed "
            f"(status={trans_status}, level={current_level})"
        )


class RejectionReasonRequiredError(ApprovalError):
    """Rejections must carry a non-blank reason."""

    code: str = "REJECTION_REASON_REQUIRED"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"A reason is required to reject {entity_type} {entity_id}")


class UnknownRequestTypeError(ApprovalError):
    """A request type string is not part of the closed enumeration."""

    code: str = "UNKNOWN_REQUEST_TYPE"

    def __init__(self, value: Any):
        self.value = value
        super().__init__(f"Unknown request type: {value!r}")


# =============================================================================
# Entity errors
# =============================================================================


class EntityNotFoundError(HrKernelError):
    """Lookup by identifier found nothing."""

    code: str = "ENTITY_NOT_FOUND"

    def __init__(self, entity_type: str, entity_id: Any):
        self.entity_type = entity_type
        self.entity_id = str(entity_id)
        super().__init__(f"{entity_type} not found: {entity_id}")


# =============================================================================
# Business rule errors (raised at submission, before any approval state)
# =============================================================================


class BusinessRuleError(HrKernelError):
    """Base for request validation failures."""

    code: str = "BUSINESS_RULE_VIOLATION"


class InsufficientLeaveBalanceError(BusinessRuleError):
    code: str = "INSUFFICIENT_LEAVE_BALANCE"

    def __init__(self, employee_no: int, requested_days: Any, balance_days: Any):
        self.employee_no = employee_no
        self.requested_days = requested_days
        self.balance_days = balance_days
        super().__init__(
            f"Employee {employee_no} requested {requested_days} days "
            f"but has {balance_days}"
        )


class InvalidLeaveRequestError(BusinessRuleError):
    code: str = "INVALID_LEAVE_REQUEST"


class InvalidLoanRequestError(BusinessRuleError):
    code: str = "INVALID_LOAN_REQUEST"


class ActiveLoanExistsError(BusinessRuleError):
    code: str = "ACTIVE_LOAN_EXISTS"

    def __init__(self, employee_no: int, loan_id: str):
        self.employee_no = employee_no
        self.loan_id = loan_id
        super().__init__(f"Employee {employee_no} already has active loan {loan_id}")


class InvalidPostponementError(BusinessRuleError):
    code: str = "INVALID_POSTPONEMENT"


class InvalidAllowanceError(BusinessRuleError):
    code: str = "INVALID_ALLOWANCE"


class DuplicatePayrollError(BusinessRuleError):
    code: str = "DUPLICATE_PAYROLL"

    def __init__(self, employee_no: int, payroll_month: str):
        self.employee_no = employee_no
        self.payroll_month = payroll_month
        super().__init__(
            f"Payroll for employee {employee_no} month {payroll_month} already exists"
        )


class InvalidLaborRequestError(BusinessRuleError):
    code: str = "INVALID_LABOR_REQUEST"


class InvalidTransferError(BusinessRuleError):
    code: str = "INVALID_TRANSFER"


class AttendanceAlreadyExistsError(BusinessRuleError):
    code: str = "ATTENDANCE_ALREADY_EXISTS"

    def __init__(self, employee_no: int, attendance_date: Any):
        self.employee_no = employee_no
        self.attendance_date = attendance_date
        super().__init__(
            f"Attendance already recorded for employee {employee_no} on {attendance_date}"
        )


# =============================================================================
# Configuration errors
# =============================================================================


class ConfigError(HrKernelError):
    """Base for configuration errors."""

    code: str = "CONFIG_ERROR"


class ChainConfigValidationError(ConfigError):
    """An approval chain set failed validation."""

    code: str = "CHAIN_CONFIG_INVALID"

    def __init__(self, config_name: str, errors: list[str]):
        self.config_name = config_name
        self.errors = list(errors)
        super().__init__(
            f"Approval chain set '{config_name}' is invalid: " + "; ".join(errors)
        )


# =============================================================================
# Batch errors
# =============================================================================


class BatchError(HrKernelError):
    """Base for batch job lifecycle errors."""

    code: str = "BATCH_ERROR"


class BatchJobNotFoundError(BatchError):
    code: str = "BATCH_JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Batch job not found: {job_id}")


class BatchAlreadyRunningError(BatchError):
    """The job is not PENDING (running, finished or cancelled)."""

    code: str = "BATCH_ALREADY_RUNNING"

    def __init__(self, job_name: str, job_id: str, status: str | None = None):
        self.job_name = job_name
        self.job_id = job_id
        self.status = status
        super().__init__(f"Batch job '{job_name}' ({job_id}) cannot start from status {status}")


class BatchIdempotencyError(BatchError):
    code: str = "BATCH_IDEMPOTENCY_CONFLICT"

    def __init__(self, idempotency_key: str, existing_job_id: str):
        self.idempotency_key = idempotency_key
        self.existing_job_id = existing_job_id
        super().__init__(
            f"Idempotency key '{idempotency_key}' already used by job {existing_job_id}"
        )


class TaskNotRegisteredError(BatchError):
    code: str = "TASK_NOT_REGISTERED"

    def __init__(self, task_type: str, available: tuple[str, ...] = ()):
        self.task_type = task_type
        self.available = tuple(available)
        super().__init__(
            f"No batch task registered for '{task_type}'. Available: {list(self.available)}"
        )
