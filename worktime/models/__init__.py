from worktime.models.company import Company
from worktime.models.employee import Employee, EmployeeService, EmployeeSubsidiary
from worktime.models.notification import Notification
from worktime.models.service import Service
from worktime.models.subsidiary import Subsidiary, SubsidiaryService
from worktime.models.time_entry import TimeEntry
from worktime.models.user import RoleRow, User, UserRole

__all__ = [
    "Company",
    "Employee",
    "EmployeeService",
    "EmployeeSubsidiary",
    "Notification",
    "RoleRow",
    "Service",
    "Subsidiary",
    "SubsidiaryService",
    "TimeEntry",
    "User",
    "UserRole",
]
