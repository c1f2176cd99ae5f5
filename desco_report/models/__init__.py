"""Database models."""

from desco_report.models.associations import user_roles
from desco_report.models.daily_consumption import DailyConsumption
from desco_report.models.location import LocationRecord
from desco_report.models.monthly_consumption import MonthlyConsumption
from desco_report.models.recent_event import RecentEvent
from desco_report.models.recharge import RechargeRecord
from desco_report.models.user import Role, User
from desco_report.models.utility_account import UtilityAccount

__all__ = [
    "DailyConsumption",
    "LocationRecord",
    "MonthlyConsumption",
    "RecentEvent",
    "RechargeRecord",
    "Role",
    "User",
    "UtilityAccount",
    "user_roles",
]
