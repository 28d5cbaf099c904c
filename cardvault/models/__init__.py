"""
SQLAlchemy ORM models package.

All models are imported here so that Base.metadata knows every table
before create_all() runs, and so other modules can import from
cardvault.models directly.
"""

from cardvault.models.user import User  # noqa: F401
from cardvault.models.payment_method import PaymentMethod  # noqa: F401
from cardvault.models.billing_access_log import BillingAccessLog, BillingAction  # noqa: F401
