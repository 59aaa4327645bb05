from .profiles import EmployeeProfile
from .inventory import InventoryRecord
from .tickets import Ticket
from .sessions import PosSession, SESSION_ACTIVE, SESSION_SYNCED, SESSION_COMPLETED, SESSION_STATUSES
from .timekeeping import TimesheetEntry, CLOCKED_IN, CLOCKED_OUT

__all__ = [
    'EmployeeProfile',
    'InventoryRecord',
    'Ticket',
    'PosSession', 'SESSION_ACTIVE', 'SESSION_SYNCED', 'SESSION_COMPLETED', 'SESSION_STATUSES',
    'TimesheetEntry', 'CLOCKED_IN', 'CLOCKED_OUT',
]
