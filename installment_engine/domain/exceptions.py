"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Input rejected before any state was touched"""

    pass


class NotFoundError(DomainException):
    """Referenced plan does not exist"""

    pass


class InvalidStateError(DomainException):
    """Operation is not legal for the plan or installment in its current state"""

    pass


class InternalError(DomainException):
    """Unexpected failure while running a ledger operation"""

    pass
