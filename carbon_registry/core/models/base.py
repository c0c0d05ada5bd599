import datetime
import enum
from enum import Enum
from functools import partial

from pydantic import BaseModel

utc_datetime_now = partial(datetime.datetime.now, datetime.timezone.utc)

# Identity used as the "no one" sentinel; never a valid participant or owner
NULL_IDENTITY = ""


class LedgerEventName(str, Enum):
    PARTICIPANT_REGISTERED = "ParticipantRegistered"
    PARTICIPANT_VERIFIED = "ParticipantVerified"
    ISSUER_AUTHORIZATION_CHANGED = "IssuerAuthorizationChanged"
    CREDIT_ISSUED = "CreditIssued"
    CREDIT_TRANSFERRED = "CreditTransferred"
    CREDIT_RETIRED = "CreditRetired"
    PROJECT_CREATED = "ProjectCreated"
    PROJECT_FUNDED = "ProjectFunded"
    PROJECT_VERIFIED = "ProjectVerified"
    PROJECT_PROGRESS_UPDATED = "ProjectProgressUpdated"
    PROJECT_MILESTONE_ADDED = "ProjectMilestoneAdded"
    PROJECT_ACTIVATION_CHANGED = "ProjectActivationChanged"


class logging_levels(str, enum.Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingLevelRequest(BaseModel):
    level: logging_levels
