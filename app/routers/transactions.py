"""
TMS transactions router: invoices, bills, financial reports and recurring billing
"""
import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api import deps
from app.core.db import get_db
from app.core.tenant_isolation import EntityNotFoundError
from app.schemas.accounting import (
    AccountingMetrics,
    BillCreate,
    BillPayment,
    BillResponse,
    FinancialReport,
    InvoiceCreate,
    InvoicePaid,
    InvoiceResponse,
    ReportType,
    TransactionEntry,
)
from app.schemas.recurring_billing import (
    BillingAnalytics,
    ContractTemplateCreate,
    OneTimeInvoiceCreate,
    RecurringTemplateCreate,
    RecurringTemplateResponse,
    SubscriptionInvoiceResponse,
    TemplateStatusUpdate,
)
from app.services.accounting import AccountingService
from app.services.automated_billing import AutomatedBillingService, build_repository, to_invoice_response

router = APIRouter()
logger = logging.getLogger(__name__)


async def _service(db: AsyncSession = Depends(get_db)) -> AccountingService:
    return AccountingService(db)


async def _billing(db: AsyncSession = Depends(get_db)) -> AutomatedBillingService:
    return AutomatedBillingService(build_repository(db))


@router.get("", response_model=List[TransactionEntry])
async def list_transactions(
    limit: int = Query(default=100, ge=1, le=500),
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> List[TransactionEntry]:
    """Invoices and bills merged, newest first"""
    return await service.list_transactions(company_id, limit)


@router.get("/metrics", response_model=AccountingMetrics)
async def accounting_metrics(
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> AccountingMetrics:
    return await service.get_accounting_metrics(company_id)


@router.get("/reports/{report_type}", response_model=FinancialReport)
async def financial_report(
    report_type: ReportType,
    start_date: Optional[date] = Query(default=None),
    end_date: Optional[date] = Query(default=None),
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> FinancialReport:
    try:
        return await service.generate_financial_report(company_id, report_type, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


# ==================== INVOICES ====================


@router.get("/invoices", response_model=List[InvoiceResponse])
async def list_invoices(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> List[InvoiceResponse]:
    invoices = await service.list_invoices(company_id, status_filter)
    return [InvoiceResponse.model_validate(invoice) for invoice in invoices]


@router.post("/invoices", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    payload: InvoiceCreate,
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> InvoiceResponse:
    try:
        invoice = await service.create_invoice(company_id, payload)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return InvoiceResponse.model_validate(invoice)


@router.post("/invoices/{invoice_id}/paid", response_model=InvoiceResponse)
async def mark_invoice_paid(
    invoice_id: str,
    payload: InvoicePaid,
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> InvoiceResponse:
    try:
        invoice = await service.mark_invoice_paid(company_id, invoice_id, payload.paid_date)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return InvoiceResponse.model_validate(invoice)


# ==================== BILLS ====================


@router.get("/bills", response_model=List[BillResponse])
async def list_bills(
    status_filter: Optional[str] = Query(default=None, alias="status"),
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> List[BillResponse]:
    bills = await service.list_bills(company_id, status_filter)
    return [BillResponse.model_validate(bill) for bill in bills]


@router.post("/bills", response_model=BillResponse, status_code=status.HTTP_201_CREATED)
async def create_bill(
    payload: BillCreate,
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> BillResponse:
    try:
        bill = await service.create_bill(company_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return BillResponse.model_validate(bill)


@router.post("/bills/{bill_id}/payments", response_model=BillResponse)
async def record_bill_payment(
    bill_id: str,
    payload: BillPayment,
    company_id: str = Depends(deps.get_current_company),
    service: AccountingService = Depends(_service),
) -> BillResponse:
    try:
        bill = await service.record_bill_payment(company_id, bill_id, payload.amount)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return BillResponse.model_validate(bill)


# ==================== RECURRING BILLING ====================


@router.get("/recurring/templates", response_model=List[RecurringTemplateResponse])
async def list_recurring_templates(
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> List[RecurringTemplateResponse]:
    templates = await service.get_recurring_templates(company_id)
    return [RecurringTemplateResponse.model_validate(template) for template in templates]


@router.post("/recurring/templates", response_model=RecurringTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_recurring_template(
    payload: RecurringTemplateCreate,
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> RecurringTemplateResponse:
    try:
        template = await service.create_recurring_template(company_id, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return RecurringTemplateResponse.model_validate(template)


@router.patch("/recurring/templates/{template_id}/status", response_model=RecurringTemplateResponse)
async def update_template_status(
    template_id: str,
    payload: TemplateStatusUpdate,
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> RecurringTemplateResponse:
    try:
        template = await service.update_template_status(company_id, template_id, payload.is_active)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return RecurringTemplateResponse.model_validate(template)


@router.post("/recurring/process", response_model=List[SubscriptionInvoiceResponse])
async def process_recurring_invoices(
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> List[SubscriptionInvoiceResponse]:
    """Bill this company's due templates now; other companies are left to the scheduler"""
    generated = await service.process_due_recurring_invoices(company_id=company_id)
    logger.info("recurring_billing_triggered", extra={"company_id": company_id, "generated": len(generated)})
    return generated


@router.get("/recurring/invoices", response_model=List[SubscriptionInvoiceResponse])
async def list_generated_invoices(
    template_id: Optional[str] = Query(default=None),
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> List[SubscriptionInvoiceResponse]:
    invoices = await service.get_generated_invoices(company_id, template_id)
    return [to_invoice_response(invoice) for invoice in invoices]


@router.get("/recurring/analytics", response_model=BillingAnalytics)
async def billing_analytics(
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> BillingAnalytics:
    return await service.get_billing_analytics(company_id)


@router.post("/recurring/contracts", response_model=RecurringTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_contract(
    payload: ContractTemplateCreate,
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> RecurringTemplateResponse:
    template = await service.create_contract_template(company_id, payload)
    return RecurringTemplateResponse.model_validate(template)


@router.post("/recurring/one-time", response_model=SubscriptionInvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_one_time_invoice(
    payload: OneTimeInvoiceCreate,
    company_id: str = Depends(deps.get_current_company),
    service: AutomatedBillingService = Depends(_billing),
) -> SubscriptionInvoiceResponse:
    invoice = await service.generate_one_time_invoice(company_id, payload)
    return to_invoice_response(invoice)
