# app/core/activities.py
"""
Static Activity Registry.

Each entry becomes one row of the `activities` table at startup. Names are
the keys used by `RequirePermission(...)` on the API and by client-side
gates, so renaming one is a breaking change.
"""

LEAD_MANAGEMENT = "Lead Management"
ARCHIVED_LEADS = "Archived Leads"
LEAD_ASSIGNMENT = "Lead Assignment"
USER_MANAGEMENT = "User Management"
ADMIN_MANAGEMENT = "Admin Management"
DEPARTMENT_MANAGEMENT = "Department Management"
ROLE_MANAGEMENT = "Role Management"
ACTIVITY_MANAGEMENT = "Activity Management"
PACKAGE_MANAGEMENT = "Package Management"
DASHBOARD = "Dashboard"


ACTIVITY_REGISTRY: list[dict] = [
    {
        "name": DASHBOARD,
        "category": "General",
        "description": "View dashboard statistics",
    },
    {
        "name": LEAD_MANAGEMENT,
        "category": "Leads",
        "description": "Create, view, update and search leads",
    },
    {
        "name": ARCHIVED_LEADS,
        "category": "Leads",
        "description": "Archive leads and restore archived leads",
    },
    {
        "name": LEAD_ASSIGNMENT,
        "category": "Leads",
        "description": "Assign leads to sales users",
    },
    {
        "name": PACKAGE_MANAGEMENT,
        "category": "Sales",
        "description": "Manage packages, pricing and discounts",
    },
    {
        "name": USER_MANAGEMENT,
        "category": "Administration",
        "description": "Create and manage CRM users",
    },
    {
        "name": ADMIN_MANAGEMENT,
        "category": "Administration",
        "description": "Register and manage admin accounts",
    },
    {
        "name": DEPARTMENT_MANAGEMENT,
        "category": "Administration",
        "description": "Manage departments and their subroles",
    },
    {
        "name": ROLE_MANAGEMENT,
        "category": "Administration",
        "description": "Assign role, admin and special user permissions",
    },
    {
        "name": ACTIVITY_MANAGEMENT,
        "category": "Administration",
        "description": "Maintain the activity catalog",
    },
]
