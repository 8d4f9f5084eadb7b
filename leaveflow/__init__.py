"""LeaveFlow — leave requests, role-based approvals and balance reporting."""

__version__ = "1.0.0"
