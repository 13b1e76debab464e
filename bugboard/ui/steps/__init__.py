"""
BugBoard Window Steps
=====================

Frames swapped inside the main window.

Classes:
--------
- LoginStep: Email/password form; starts the session.
- DashboardStep: Issue list with filters, issue creation, comments and
  admin user creation.
"""

from .login import LoginStep
from .dashboard import DashboardStep
