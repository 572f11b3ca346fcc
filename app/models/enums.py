from enum import Enum


class UserRole(str, Enum):
    admin = "admin"
    user = "user"


class RecordStatus(str, Enum):
    active = "active"
    inactive = "inactive"


class LeadStatus(str, Enum):
    open = "open"
    interested = "interested"
    notinterested = "notinterested"
    dnr1 = "DNR1"
    dnr2 = "DNR2"
    dnr3 = "DNR3"
    dead = "Dead"
    not_working = "not working"
    wrong_no = "wrong no"
    closed = "closed"
    call_again_later = "call again later"
    follow_up = "follow up"
    enrolled = "Enrolled"


class VisaStatus(str, Enum):
    h1b = "H1B"
    l1 = "L1"
    f1 = "F1"
    green_card = "Green Card"
    citizen = "Citizen"
    h4_ead = "H4 EAD"
    l2_ead = "L2 EAD"
    other = "Other"


# Status groups used by lead listing and search
LEAD_STATUS_GROUPS: dict[str, list[LeadStatus]] = {
    "open": [LeadStatus.open],
    "Enrolled": [LeadStatus.enrolled],
    "archived": [LeadStatus.dead, LeadStatus.notinterested],
    "inProcess": [
        LeadStatus.dnr1,
        LeadStatus.dnr2,
        LeadStatus.dnr3,
        LeadStatus.interested,
        LeadStatus.not_working,
        LeadStatus.follow_up,
        LeadStatus.wrong_no,
        LeadStatus.call_again_later,
    ],
}

# "followUp" and "inProcess" also depend on the follow-up time: a lead whose
# follow-up falls within the next 24h moves from inProcess to followUp.
FOLLOW_UP_GROUP = "followUp"
IN_PROCESS_GROUP = "inProcess"
FOLLOW_UP_WINDOW_HOURS = 24

# Never part of the inProcess / followUp pipeline
OUTSIDE_PIPELINE: list[LeadStatus] = [
    LeadStatus.dead,
    LeadStatus.notinterested,
    LeadStatus.enrolled,
    LeadStatus.open,
]

STATUS_GROUP_NAMES = ["open", IN_PROCESS_GROUP, FOLLOW_UP_GROUP, "Enrolled", "archived"]


def enum_values(enum_cls):
    """Persist enum values (not member names) in SQLAlchemy Enum columns."""
    return [member.value for member in enum_cls]
