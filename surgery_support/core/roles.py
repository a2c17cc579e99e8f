"""Closed role enumeration and the static capability table."""

from enum import Enum


class RoleName(str, Enum):
    """Roles known to the portal."""

    PATIENT = "Patient"
    RECOVERY_COORDINATOR = "Recovery Coordinator"
    NURSE = "Nurse"
    CLINIC_ADMINISTRATOR = "Clinic Administrator"
    SALES = "Sales"


class Capability(str, Enum):
    """Actions gated by role."""

    VIEW_OWN_APPOINTMENTS = "read:own_appointments"
    VIEW_ALL_APPOINTMENTS = "read:appointments"
    MANAGE_APPOINTMENTS = "manage:appointments"
    RESCHEDULE_APPOINTMENTS = "reschedule:appointments"
    VIEW_PATIENT_ROSTER = "read:patients"
    MANAGE_NOTIFICATION_PREFERENCES = "manage:notification_preferences"
    # Checklist items, medications and conversations
    VIEW_OWN_CARE_RECORDS = "read:own_care_records"
    VIEW_ALL_CARE_RECORDS = "read:care_records"
    MANAGE_CARE_RECORDS = "manage:care_records"
    COMPLETE_CHECKLIST_ITEMS = "complete:checklist_items"
    SEND_MESSAGES = "send:messages"


CARE_TEAM_ROLES: frozenset[RoleName] = frozenset(
    {
        RoleName.RECOVERY_COORDINATOR,
        RoleName.NURSE,
        RoleName.CLINIC_ADMINISTRATOR,
        RoleName.SALES,
    }
)

_CLINICAL_STAFF = frozenset(
    {
        Capability.VIEW_ALL_APPOINTMENTS,
        Capability.MANAGE_APPOINTMENTS,
        Capability.RESCHEDULE_APPOINTMENTS,
        Capability.VIEW_PATIENT_ROSTER,
        Capability.MANAGE_NOTIFICATION_PREFERENCES,
        Capability.VIEW_ALL_CARE_RECORDS,
        Capability.MANAGE_CARE_RECORDS,
        Capability.COMPLETE_CHECKLIST_ITEMS,
        Capability.SEND_MESSAGES,
    }
)

ROLE_CAPABILITIES: dict[RoleName, frozenset[Capability]] = {
    RoleName.PATIENT: frozenset(
        {
            Capability.VIEW_OWN_APPOINTMENTS,
            Capability.RESCHEDULE_APPOINTMENTS,
            Capability.MANAGE_NOTIFICATION_PREFERENCES,
            Capability.VIEW_OWN_CARE_RECORDS,
            Capability.COMPLETE_CHECKLIST_ITEMS,
            Capability.SEND_MESSAGES,
        }
    ),
    RoleName.RECOVERY_COORDINATOR: _CLINICAL_STAFF,
    RoleName.NURSE: _CLINICAL_STAFF,
    RoleName.CLINIC_ADMINISTRATOR: _CLINICAL_STAFF,
    # Sales sees the roster and schedule but no clinical records
    RoleName.SALES: frozenset(
        {
            Capability.VIEW_ALL_APPOINTMENTS,
            Capability.VIEW_PATIENT_ROSTER,
            Capability.MANAGE_NOTIFICATION_PREFERENCES,
        }
    ),
}


def parse_role(name: str | None) -> RoleName | None:
    """Map a stored role name onto the enum, ``None`` when unrecognised."""
    if not name:
        return None
    try:
        return RoleName(name)
    except ValueError:
        return None


def has_capability(role: RoleName | None, capability: Capability) -> bool:
    """Check the capability table for a role."""
    if role is None:
        return False
    return capability in ROLE_CAPABILITIES[role]


def is_care_team(role: RoleName | None) -> bool:
    """Return True for any staff role."""
    return role in CARE_TEAM_ROLES


def role_permissions(role: RoleName) -> list[str]:
    """Permission strings stored alongside a role row."""
    return sorted(capability.value for capability in ROLE_CAPABILITIES[role])
