"""Draft batch API endpoints."""

import logging

from fastapi import APIRouter, HTTPException, status

from payroll_draft.api.dependencies import (
    Attendance,
    DbSession,
    Directory,
    Drafts,
    DraftSession,
    DraftStore,
    StatutoryRules,
    TenantId,
)
from payroll_draft.api.schemas import (
    AttendanceSyncResponse,
    BatchRequest,
    BatchResponse,
    CalculationResponse,
    DraftCreate,
    DraftResponse,
    ErrorResponse,
    PeriodResponse,
    PeriodUpdate,
    RowEdit,
    RowEditResponse,
    RowResponse,
    RowValuesResponse,
    TotalsResponse,
    ValidationResponse,
    WarningListResponse,
    WarningResponse,
)
from payroll_draft.calculators.rate_resolver import RateResolver
from payroll_draft.config import get_settings
from payroll_draft.services.attendance import (
    AttendanceFetchError,
    AttendanceReconciler,
    StaleAttendanceError,
)
from payroll_draft.services.batch_builder import aggregate_totals, build_batch
from payroll_draft.services.compliance import ComplianceWarningDetector
from payroll_draft.services.draft_manager import (
    DraftRow,
    DraftRowManager,
    DraftSnapshot,
    RowNotFoundError,
)
from payroll_draft.services.rule_repository import (
    StatutoryRuleNotFoundError,
    StatutoryRuleRepository,
)
from payroll_draft.services.validator import PayrollValidator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/drafts", tags=["drafts"])


# ============================================================================
# Helpers
# ============================================================================


def _get_draft(drafts: DraftStore, tenant_id: str, draft_id: str) -> DraftSession:
    session = drafts.get(tenant_id, draft_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Draft not found",
        )
    return session


def _row_not_found(e: RowNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


def _row_response(row: DraftRow, snapshot: DraftSnapshot) -> RowResponse:
    return RowResponse(
        employee_id=row.employee_id,
        employee_name=row.employee.display_name,
        status=row.status.value,
        is_edited=row.is_edited,
        included=snapshot.is_included(row.employee_id),
        current=RowValuesResponse.model_validate(row.current),
        original=RowValuesResponse.model_validate(row.original),
        calculation=(
            CalculationResponse.model_validate(row.calculation)
            if row.calculation is not None
            else None
        ),
        calculation_error=row.calculation_error,
    )


def _draft_response(session: DraftSession) -> DraftResponse:
    snapshot = session.manager.snapshot()
    return DraftResponse(
        draft_id=session.draft_id,
        revision=snapshot.revision,
        rules_version=session.manager.config.version,
        period=PeriodResponse.model_validate(snapshot.period),
        rows=[_row_response(row, snapshot) for row in snapshot.rows],
        excluded=sorted(snapshot.excluded),
        totals=TotalsResponse.model_validate(aggregate_totals(snapshot)),
    )


# ============================================================================
# Draft lifecycle
# ============================================================================


@router.post(
    "",
    response_model=DraftResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorResponse}},
)
async def create_draft(
    db: DbSession,
    tenant_id: TenantId,
    payload: DraftCreate,
    drafts: Drafts,
    directory: Directory,
    default_rules: StatutoryRules,
) -> DraftResponse:
    """Load the roster and seed a new draft batch."""
    settings = get_settings()
    as_of = payload.pay_date or payload.period_end

    try:
        config = await StatutoryRuleRepository(db).get_config(settings.jurisdiction, as_of)
    except StatutoryRuleNotFoundError:
        config = default_rules

    manager = DraftRowManager(config, engine_version=settings.engine_version)
    period = RateResolver(config.working_hours).build_period(
        pay_frequency=payload.pay_frequency,
        period_start=payload.period_start,
        period_end=payload.period_end,
        pay_date=payload.pay_date,
        include_annual_supplement=payload.include_annual_supplement,
    )
    roster = await directory.list_active(tenant_id, payload.period_start)
    try:
        manager.seed(roster, period)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    session = drafts.create(tenant_id, manager)
    logger.info(
        "Opened draft %s for tenant %s with %d rows", session.draft_id, tenant_id, len(roster)
    )
    return _draft_response(session)


@router.get(
    "/{draft_id}",
    response_model=DraftResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_draft(draft_id: str, tenant_id: TenantId, drafts: Drafts) -> DraftResponse:
    """Get a draft with its rows and totals."""
    return _draft_response(_get_draft(drafts, tenant_id, draft_id))


@router.delete(
    "/{draft_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: {"model": ErrorResponse}},
)
async def delete_draft(draft_id: str, tenant_id: TenantId, drafts: Drafts) -> None:
    """Tear down a draft. Nothing is persisted."""
    if not drafts.discard(tenant_id, draft_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Draft not found",
        )


@router.patch(
    "/{draft_id}/period",
    response_model=DraftResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_period(
    draft_id: str,
    tenant_id: TenantId,
    payload: PeriodUpdate,
    drafts: Drafts,
) -> DraftResponse:
    """Change the period context; every row is recomputed."""
    session = _get_draft(drafts, tenant_id, draft_id)
    try:
        changes = payload.model_dump(exclude_none=True)
        if "pay_date" in payload.model_fields_set and payload.pay_date is None:
            changes["pay_date"] = None
        session.manager.update_period(**changes)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return _draft_response(session)


# ============================================================================
# Rows
# ============================================================================


@router.patch(
    "/{draft_id}/rows/{employee_id}",
    response_model=RowEditResponse,
    responses={404: {"model": ErrorResponse}},
)
async def edit_row(
    draft_id: str,
    employee_id: str,
    tenant_id: TenantId,
    payload: RowEdit,
    drafts: Drafts,
) -> RowEditResponse:
    """Edit one field of a row. Out-of-bounds values are rejected, not applied."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    try:
        accepted = manager.edit(employee_id, payload.field, payload.value)
    except RowNotFoundError as e:
        raise _row_not_found(e)
    snapshot = manager.snapshot()
    return RowEditResponse(
        accepted=accepted,
        row=_row_response(snapshot.row(employee_id), snapshot),
    )


@router.post(
    "/{draft_id}/rows/{employee_id}/reset",
    response_model=RowResponse,
    responses={404: {"model": ErrorResponse}},
)
async def reset_row(
    draft_id: str,
    employee_id: str,
    tenant_id: TenantId,
    drafts: Drafts,
) -> RowResponse:
    """Restore a row's original values."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    try:
        manager.reset(employee_id)
    except RowNotFoundError as e:
        raise _row_not_found(e)
    snapshot = manager.snapshot()
    return _row_response(snapshot.row(employee_id), snapshot)


@router.put(
    "/{draft_id}/exclusions/{employee_id}",
    response_model=TotalsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def exclude_row(
    draft_id: str,
    employee_id: str,
    tenant_id: TenantId,
    drafts: Drafts,
) -> TotalsResponse:
    """Exclude an employee from the batch; returns the new totals."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    try:
        manager.exclude(employee_id)
    except RowNotFoundError as e:
        raise _row_not_found(e)
    return TotalsResponse.model_validate(aggregate_totals(manager.snapshot()))


@router.delete(
    "/{draft_id}/exclusions/{employee_id}",
    response_model=TotalsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def include_row(
    draft_id: str,
    employee_id: str,
    tenant_id: TenantId,
    drafts: Drafts,
) -> TotalsResponse:
    """Include a previously excluded employee; returns the new totals."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    try:
        manager.include(employee_id)
    except RowNotFoundError as e:
        raise _row_not_found(e)
    return TotalsResponse.model_validate(aggregate_totals(manager.snapshot()))


# ============================================================================
# Attendance, checks and batch
# ============================================================================


@router.post(
    "/{draft_id}/attendance-sync",
    response_model=AttendanceSyncResponse,
    responses={
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def sync_attendance(
    draft_id: str,
    tenant_id: TenantId,
    drafts: Drafts,
    source: Attendance,
) -> AttendanceSyncResponse:
    """Pull the attendance summary for the period and merge it into rows."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    try:
        updated = await AttendanceReconciler(source).sync(manager)
    except AttendanceFetchError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    except StaleAttendanceError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return AttendanceSyncResponse(updated_rows=updated, revision=manager.revision)


@router.get(
    "/{draft_id}/validation",
    response_model=ValidationResponse,
    responses={404: {"model": ErrorResponse}},
)
async def validate_draft(
    draft_id: str, tenant_id: TenantId, drafts: Drafts
) -> ValidationResponse:
    """Run business-rule validation over included rows."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    errors = PayrollValidator(manager.config).validate(manager.snapshot())
    return ValidationResponse(valid=not errors, errors=errors)


@router.get(
    "/{draft_id}/warnings",
    response_model=WarningListResponse,
    responses={404: {"model": ErrorResponse}},
)
async def list_warnings(
    draft_id: str, tenant_id: TenantId, drafts: Drafts
) -> WarningListResponse:
    """Compliance warnings for included rows. Warnings never block submission."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    warnings = ComplianceWarningDetector(manager.config).detect(manager.snapshot())
    return WarningListResponse(
        warnings=[WarningResponse(**w.to_dict()) for w in warnings]
    )


@router.get(
    "/{draft_id}/totals",
    response_model=TotalsResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_totals(draft_id: str, tenant_id: TenantId, drafts: Drafts) -> TotalsResponse:
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    return TotalsResponse.model_validate(aggregate_totals(manager.snapshot()))


@router.post(
    "/{draft_id}/batch",
    response_model=BatchResponse,
    responses={404: {"model": ErrorResponse}, 422: {"model": ErrorResponse}},
)
async def create_batch(
    draft_id: str,
    tenant_id: TenantId,
    payload: BatchRequest,
    drafts: Drafts,
) -> BatchResponse:
    """Build the batch header and records. The caller persists them."""
    manager = _get_draft(drafts, tenant_id, draft_id).manager
    snapshot = manager.snapshot()

    errors = PayrollValidator(manager.config).validate(snapshot)
    if errors and not payload.allow_validation_errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="; ".join(errors),
        )

    batch = build_batch(snapshot, manager.config, payload.created_by).to_dict()
    return BatchResponse(header=batch["header"], records=batch["records"])
