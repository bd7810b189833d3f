"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidInputError(DomainException):
    """Amount, percentage or date supplied by the user is out of range or malformed"""

    pass
