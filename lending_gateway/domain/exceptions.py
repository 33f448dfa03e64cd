"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class InvalidPrincipal(DomainException):
    """Principal is zero, negative or missing"""

    pass


class InvalidDuration(DomainException):
    """Interest day count is negative"""

    pass


class InvalidDateFormat(DomainException):
    """A date value could not be read as a civil calendar date"""

    pass


class NotEligible(DomainException):
    """Loan cannot be extended right now"""

    def __init__(self, reason: str, window=None):
        super().__init__(reason)
        self.reason = reason
        self.window = window


class AlreadyPending(NotEligible):
    """An extension request is already awaiting payment"""

    def __init__(self, reason: str = "A pending extension request already exists", window=None):
        super().__init__(reason, window)


class MaxExtensionsReached(NotEligible):
    """All allowed extensions have been used"""

    def __init__(self, max_extensions: int = 4, window=None):
        super().__init__(f"Maximum {max_extensions} extensions already availed", window)
        self.max_extensions = max_extensions


class InvalidState(DomainException):
    """Operation is not allowed from the record's current status"""

    pass


class LoanNotFound(DomainException):
    """Loan application does not exist"""

    pass


class ExtensionNotFound(DomainException):
    """Extension request does not exist"""

    pass


class UserNotFound(DomainException):
    """Borrower does not exist"""

    pass
