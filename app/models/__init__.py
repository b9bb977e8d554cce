"""SQLAlchemy models for HaulBase."""

from app.models.company import Company  # noqa: F401
from app.models.driver import Driver  # noqa: F401
from app.models.equipment import Truck  # noqa: F401
from app.models.load import DispatchLeg, Load, LoadAssignment  # noqa: F401
from app.models.load_billing import LoadAccessorial, LoadBilling, LoadExpense  # noqa: F401
from app.models.accounting import Bill, Invoice  # noqa: F401
from app.models.hr import Employee, EmployeePaystub, PayrollRun  # noqa: F401
from app.models.billing import Subscription, SubscriptionAddon  # noqa: F401
from app.models.recurring_billing import RecurringInvoiceTemplate, SubscriptionInvoice  # noqa: F401
