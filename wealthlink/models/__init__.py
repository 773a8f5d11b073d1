"""ORM Models - SQLAlchemy declarative models, one table per collection.

Invariants:
    - All models inherit from Base (db/base.py)
    - Users, transactions, withdrawals, notifications, app_config: one table each
    - Rows are mapped to core records only inside infrastructure/repositories.py

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all/alembic
"""

from wealthlink.models.user import User  # noqa: F401
from wealthlink.models.transaction import Transaction  # noqa: F401
from wealthlink.models.withdrawal import Withdrawal  # noqa: F401
from wealthlink.models.notification import Notification  # noqa: F401
from wealthlink.models.app_config import AppConfigRow  # noqa: F401
