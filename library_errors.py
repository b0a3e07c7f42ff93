class LibraryError(Exception):
    """Base exception for library catalog errors."""


class BookNotFoundError(LibraryError):
    """Book is not part of the catalog."""


class MemberNotFoundError(LibraryError):
    """Member is not registered with the library."""


class DuplicateBookError(LibraryError):
    """Trying to add a book whose ID is already in the catalog."""


class DuplicateMemberError(LibraryError):
    """Trying to register a member whose email or phone is already taken."""


class InvalidStateError(LibraryError):
    """Operation does not apply to the book's current issuance state."""


class CheckoutRuleViolationError(LibraryError):
    """issue/return violates borrowing rules."""


class NotIssuedByMemberError(CheckoutRuleViolationError):
    """Member is returning a book they do not hold."""


class LimitReachedError(CheckoutRuleViolationError):
    """Member already holds as many books as their policy allows."""


class ConfigurationError(LibraryError):
    """A setting has an unsupported value."""
