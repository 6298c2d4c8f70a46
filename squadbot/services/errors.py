class ServiceError(Exception):
    """Base class for errors the domain services report to the controller."""

    message = "service error"

    def __init__(self, message=None):
        super().__init__(message or self.message)


# Kinds

class NotFoundError(ServiceError):
    message = "not found"


class ValidationError(ServiceError):
    message = "validation failed"


class QuotaExceededError(ServiceError):
    message = "quota exceeded"


class ConflictError(ServiceError):
    message = "conflict"


class AuthorizationError(ServiceError):
    message = "not authorized"


# Not found

class ChallengeNotFound(NotFoundError):
    message = "challenge not found"


class TaskNotFound(NotFoundError):
    message = "task not found"


class ParticipantNotFound(NotFoundError):
    message = "participant not found"


class TemplateNotFound(NotFoundError):
    message = "template not found"


class SuperAdminNotFound(NotFoundError):
    message = "super admin not found"


# Validation

class InvalidName(ValidationError):
    message = "invalid name"


class InvalidTitle(ValidationError):
    message = "task title is required"


class InvalidDescription(ValidationError):
    message = "description is too long"


class InvalidPosition(ValidationError):
    message = "invalid position"


class InvalidEmoji(ValidationError):
    message = "invalid emoji"


class InvalidDailyLimit(ValidationError):
    message = "daily limit out of range"


# Quotas

class MaxChallengesReached(QuotaExceededError):
    message = "maximum challenges reached"


class MaxTasksReached(QuotaExceededError):
    message = "maximum tasks reached"


class ChallengeFull(QuotaExceededError):
    message = "challenge is full"


# Conflicts

class AlreadyMember(ConflictError):
    message = "already a member of this challenge"


class EmojiTaken(ConflictError):
    message = "emoji already taken"


class AlreadySuperAdmin(ConflictError):
    message = "user is already a super admin"


class TemplateNameExists(ConflictError):
    message = "template name already exists"


# Authorization

class NotAdmin(AuthorizationError):
    message = "not the challenge admin"


class NotSuperAdmin(AuthorizationError):
    message = "not a super admin"


class CannotRemoveSelf(AuthorizationError):
    message = "cannot remove yourself"


class IdGenerationFailed(ServiceError):
    message = "failed to generate unique challenge ID"
