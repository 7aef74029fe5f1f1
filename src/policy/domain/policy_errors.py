from dataclasses import dataclass
from enum import Enum


class PolicyErrorKind(Enum):
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    INVALID_TARGET = "INVALID_TARGET"
    DUPLICATE_SCOPE = "DUPLICATE_SCOPE"
    MISSING_THRESHOLD = "MISSING_THRESHOLD"
    INVALID_FIELD = "INVALID_FIELD"
    NOT_FOUND = "NOT_FOUND"


@dataclass(frozen=True)
class PolicyValidationError:
    kind: PolicyErrorKind
    message: str


class PolicyOperationError(Exception):
    """Raised by the policy service when a request cannot be honoured."""

    def __init__(self, error: PolicyValidationError):
        super().__init__(error.message)
        self.error = error

    @property
    def kind(self) -> PolicyErrorKind:
        return self.error.kind


class PolicyScopeConflict(Exception):
    """Raised by a policy store when the (organization, category, user) scope is already taken."""
    pass


class PolicyPayloadError(ValueError):
    """Raised when a raw request payload cannot be turned into a draft or patch."""
    pass
