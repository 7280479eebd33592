from enum import Enum


class ErrorCode(str, Enum):
    EVENT_NOT_FOUND = "EVENT_NOT_FOUND"
    REGISTRATION_NOT_FOUND = "REGISTRATION_NOT_FOUND"
    NOTIFICATION_NOT_FOUND = "NOTIFICATION_NOT_FOUND"

    EVENT_FULL = "EVENT_FULL"
    ALREADY_REGISTERED = "ALREADY_REGISTERED"
    SCHEDULE_CONFLICT = "SCHEDULE_CONFLICT"
    CAPACITY_BELOW_REGISTERED = "CAPACITY_BELOW_REGISTERED"
    EMAIL_TAKEN = "EMAIL_TAKEN"

    NOT_ORGANIZER = "NOT_ORGANIZER"
    NOT_EVENT_OWNER = "NOT_EVENT_OWNER"
    NOT_RECIPIENT = "NOT_RECIPIENT"

    INVALID_RATING = "INVALID_RATING"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    INVALID_INPUT = "INVALID_INPUT"

    BACKEND_UNAVAILABLE = "BACKEND_UNAVAILABLE"
