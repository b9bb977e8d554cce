from fastapi import APIRouter

from app.routers import (
    dashboard,
    dispatch,
    health,
    hr,
    load_billing,
    loads,
    payroll,
    reporting,
    subscription,
    transactions,
)

api_router = APIRouter()

api_router.include_router(health.router, tags=["Health"])
api_router.include_router(loads.router, prefix="/loads", tags=["Loads"])
api_router.include_router(load_billing.router, prefix="/loads", tags=["Load Billing"])
api_router.include_router(dispatch.router, prefix="/dispatch", tags=["Dispatch"])
api_router.include_router(reporting.router, prefix="/reporting", tags=["Reporting"])
api_router.include_router(transactions.router, prefix="/tms/transactions", tags=["Accounting"])
api_router.include_router(payroll.router, prefix="/payroll", tags=["Payroll"])
api_router.include_router(hr.router, prefix="/tenant/hr", tags=["HR"])
api_router.include_router(subscription.router, prefix="/subscription", tags=["Subscription"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
