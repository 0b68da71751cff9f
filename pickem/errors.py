"""
Rejection taxonomy for pick'em operations.

Every user-fixable condition has its own subclass so callers can branch on
the type while the HTTP layer renders ``{"error": ..., "code": ...}``.
System faults surface as :class:`InternalError`.
"""


class PickemError(Exception):
    """Base class for all rejections surfaced to API callers"""

    code = "Error"
    status_code = 400
    default_message = "Request rejected"

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)

    def to_dict(self):
        data = {"error": self.message, "code": self.code}
        if self.details:
            data["details"] = self.details
        return data


class Unauthenticated(PickemError):
    code = "Unauthenticated"
    status_code = 401
    default_message = "unauthenticated"


class NotMember(PickemError):
    code = "NotMember"
    status_code = 403
    default_message = "not a league member"


class Forbidden(PickemError):
    code = "Forbidden"
    status_code = 403
    default_message = "forbidden"


class QuotaExceeded(PickemError):
    code = "QuotaExceeded"
    default_message = "quota reached (2 picks/week)"


class TeamAlreadyUsed(PickemError):
    code = "TeamAlreadyUsed"
    default_message = "team already used this season"


class GameNotFound(PickemError):
    code = "GameNotFound"
    default_message = "could not resolve game for team/week"


class Locked(PickemError):
    code = "Locked"
    default_message = "game is locked (kickoff passed)"


class BadRequest(PickemError):
    code = "BadRequest"
    default_message = "bad request"


class NotFound(PickemError):
    code = "NotFound"
    status_code = 404
    default_message = "not found"


class InternalError(PickemError):
    code = "InternalError"
    status_code = 500
    default_message = "internal error"
