"""Role levels and the permissions each level grants.

Lower level means more authority: a user at level N holds every permission
of the levels below it (N, N+1, ...).
"""

SYSTEM_ADMIN = 0
COMPANY_OWNER = 1
STAFF_MEMBER = 2
USER = 3

ROLE_NAMES = {
    SYSTEM_ADMIN: "System Admin",
    COMPANY_OWNER: "Company Owner",
    STAFF_MEMBER: "Staff Member",
    USER: "User",
}

ROLE_PERMISSIONS = {
    SYSTEM_ADMIN: ["manage_system"],
    COMPANY_OWNER: [
        "manage_company",
        "manage_staff",
        "view_analytics",
        "manage_services",
        "view_reports",
    ],
    STAFF_MEMBER: [
        "manage_appointments",
        "process_payments",
        "view_client_info",
        "update_appointments",
        "view_schedule",
    ],
    USER: [
        "book_appointments",
        "view_history",
        "manage_profile",
        "view_services",
    ],
}


def get_role_name(level):
    return ROLE_NAMES.get(level, "Unknown")


def permissions_for(level):
    perms = set()
    for role_level, granted in ROLE_PERMISSIONS.items():
        if role_level >= level:
            perms.update(granted)
    return perms


def has_permission(level, permission):
    return permission in permissions_for(level)
