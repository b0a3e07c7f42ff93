from __future__ import annotations

import argparse
import logging
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import date, timedelta
from enum import Enum
from typing import Deque, Dict, List, Optional, Sequence

from library_config import HANDOFF_POLICIES, HANDOFF_PROPAGATE, LOG_LEVELS, settings
from library_errors import (
    LibraryError,
    BookNotFoundError,
    MemberNotFoundError,
    DuplicateBookError,
    DuplicateMemberError,
    InvalidStateError,
    NotIssuedByMemberError,
    LimitReachedError,
    ConfigurationError,
)


# Logging configuration
logger = logging.getLogger("library")
logger.setLevel(settings.log_level_value)

if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    )
    handler.setFormatter(formatter)
    logger.addHandler(handler)


def _new_id() -> str:
    return uuid.uuid4().hex


def _due_date(start: date, allowed_days: Optional[int]) -> date:
    """
    Returns start + allowed_days, clamped to date.max.

    None means an unlimited loan, which also lands on date.max.
    """
    if allowed_days is None:
        return date.max
    try:
        return start + timedelta(days=allowed_days)
    except OverflowError:
        return date.max


# Borrowing Policies
class MemberType(Enum):
    STUDENT = "Student"
    TEACHER = "Teacher"
    GUEST = "Guest"
    LIBRARIAN = "Librarian"


@dataclass(frozen=True)
class MemberPolicy:
    """
    Borrowing limits of a member type.

    Attributes:
        maxBooks (Optional[int]): Books a member may hold at once, None if unlimited.
        maxDays (Optional[int]): Loan length in days, None if unlimited.
    """
    maxBooks: Optional[int]
    maxDays: Optional[int]


MEMBER_POLICIES: Dict[MemberType, MemberPolicy] = {
    MemberType.STUDENT: MemberPolicy(maxBooks=3, maxDays=14),
    MemberType.TEACHER: MemberPolicy(maxBooks=5, maxDays=30),
    MemberType.GUEST: MemberPolicy(maxBooks=1, maxDays=7),
    MemberType.LIBRARIAN: MemberPolicy(maxBooks=None, maxDays=None),
}


# Domain Models
@dataclass(eq=False)
class Member:
    """
    Represents a library member.

    Email and phone are the dedup keys checked at registration.

    Attributes:
        name (str): Member name.
        email (str): Contact email.
        phone (str): Contact phone number.
        memberType (MemberType): Variant that selects the borrowing policy.
        memberId (str): Unique identifier, generated on creation.
        currentlyIssuedBooks (List[str]): IDs of the books the member holds.
    """
    name: str
    email: str
    phone: str
    memberType: MemberType
    memberId: str = field(default_factory=_new_id)
    currentlyIssuedBooks: List[str] = field(default_factory=list)

    @classmethod
    def student(cls, name: str, email: str, phone: str) -> Member:
        return cls(name, email, phone, MemberType.STUDENT)

    @classmethod
    def teacher(cls, name: str, email: str, phone: str) -> Member:
        return cls(name, email, phone, MemberType.TEACHER)

    @classmethod
    def guest(cls, name: str, email: str, phone: str) -> Member:
        return cls(name, email, phone, MemberType.GUEST)

    @classmethod
    def librarian(cls, name: str, email: str, phone: str) -> Member:
        return cls(name, email, phone, MemberType.LIBRARIAN)

    @property
    def policy(self) -> MemberPolicy:
        return MEMBER_POLICIES[self.memberType]

    @property
    def maxBooksAllowed(self) -> Optional[int]:
        return self.policy.maxBooks

    def getMaxAllowedDays(self) -> Optional[int]:
        return self.policy.maxDays

    def getMemberType(self) -> str:
        return self.memberType.value

    def hasReachedLimit(self) -> bool:
        """
        Returns True if the member cannot take another book.
        """
        limit = self.maxBooksAllowed
        return limit is not None and len(self.currentlyIssuedBooks) >= limit


@dataclass(eq=False)
class Book:
    """
    Represents a book in the catalog.

    Attributes:
        title (str): Book title.
        author (str): Author name.
        genre (str): Genre.
        bookId (str): Unique identifier, generated on creation.
        isIssued (bool): Whether the book is currently lent out.
        issuedTo (Optional[str]): memberId of the holder while issued.
        dueDate (Optional[date]): Due date while issued.
        reservationQueue (Deque[str]): memberIds waiting for the book, oldest first.
    """
    title: str
    author: str
    genre: str
    bookId: str = field(default_factory=_new_id)
    isIssued: bool = False
    issuedTo: Optional[str] = None
    dueDate: Optional[date] = None
    reservationQueue: Deque[str] = field(default_factory=deque)

    def issueTo(
        self,
        member: Member,
        allowedDays: Optional[int],
        issue_date: Optional[date] = None
    ) -> None:
        """
        Marks the book as issued to member, due allowedDays after issue_date.

        Does not check whether the book was available and does not touch the
        member's issued list; both are up to the Library.
        """
        if issue_date is None:
            issue_date = date.today()

        self.isIssued = True
        self.issuedTo = member.memberId
        self.dueDate = _due_date(issue_date, allowedDays)

    def returnBook(self) -> None:
        self.isIssued = False
        self.issuedTo = None
        self.dueDate = None

    def summary(self, holder_name: Optional[str]) -> str:
        """
        Single-line report form; holder_name is only shown while issued.
        """
        status = f"Issued to {holder_name}" if self.isIssued else "Available"
        return f"{self.title} by {self.author} ({self.genre}) - {status}"

    def __str__(self) -> str:
        # Debug form: the book only knows the holder's ID, not their name.
        return self.summary(f"member {self.issuedTo}")


@dataclass(frozen=True)
class IssuedBookStatus:
    """
    One line of a member's issued-books report.

    daysRemaining is negative once the book is overdue.
    """
    bookId: str
    title: str
    dueDate: date
    daysRemaining: int

    def __str__(self) -> str:
        return f"{self.title} - Due in {self.daysRemaining} days"


# Library Core
class Library:
    """
    Aggregate root that owns the book catalog and the member registry.

    Rules enforced:
        (1) Book IDs are unique in the catalog
        (2) No two members share an ID, an email or a phone number
        (3) Members hold at most as many books as their policy allows
        (4) Loans last as many days as the member's policy allows
        (5) Issued books cannot be removed; available books cannot be reserved
        (6) A returned book goes straight to the head of its reservation queue
    """

    def __init__(self, handoff_policy: Optional[str] = None) -> None:
        """
        Initializes an empty library.

        handoff_policy defaults to the configured one; see _hand_off.
        """
        if handoff_policy is None:
            handoff_policy = settings.handoff_policy
        if handoff_policy not in HANDOFF_POLICIES:
            raise ConfigurationError(f"Unsupported handoff policy: {handoff_policy!r}")

        self.handoff_policy = handoff_policy
        self.books: Dict[str, Book] = {}
        self.members: Dict[str, Member] = {}

    # Public API

    def addBook(self, book: Book) -> None:
        """
        Adds a new book to the end of the catalog.

        Raises:
            DuplicateBookError: If a book with the same ID already exists.
        """
        logger.info("addBook called | bookId=%s title=%s", book.bookId, book.title)

        if book.bookId in self.books:
            raise DuplicateBookError(f"Duplicate book ID detected: bookId={book.bookId}")

        self.books[book.bookId] = book
        logger.info("Book added successfully | bookId=%s", book.bookId)

    def removeBook(self, book: Book) -> None:
        """
        Removes a book that is not currently issued.

        Pending reservations for the book are discarded.

        Raises:
            BookNotFoundError
            InvalidStateError: If the book is issued.
        """
        logger.info("removeBook called | bookId=%s", book.bookId)

        book = self._require_book(book)
        if book.isIssued:
            raise InvalidStateError(
                f"Cannot remove book that is currently issued: bookId={book.bookId}"
            )

        if book.reservationQueue:
            logger.warning(
                "Discarding reservations of removed book | bookId=%s reservers=%d",
                book.bookId,
                len(book.reservationQueue),
            )
            book.reservationQueue.clear()

        del self.books[book.bookId]
        logger.info("Book removed successfully | bookId=%s", book.bookId)

    def registerMember(self, member: Member) -> None:
        """
        Registers a new member.

        Raises:
            DuplicateMemberError: If the memberId, the email or the phone is
                already registered.
        """
        logger.info(
            "registerMember called | memberId=%s type=%s",
            member.memberId,
            member.getMemberType(),
        )

        if member.memberId in self.members:
            raise DuplicateMemberError(f"Member already exists: memberId={member.memberId}")

        for existing in self.members.values():
            if existing.email == member.email or existing.phone == member.phone:
                raise DuplicateMemberError(
                    f"Member already exists: email={member.email} phone={member.phone}"
                )

        self.members[member.memberId] = member
        logger.info("Member registered successfully | memberId=%s", member.memberId)

    def searchBooks(self, keyword: str) -> List[Book]:
        """
        Returns books whose title, author or genre contains keyword,
        ignoring case, in catalog order. An empty keyword matches every book.
        """
        needle = keyword.lower()
        return [
            b
            for b in self.books.values()
            if needle in b.title.lower()
            or needle in b.author.lower()
            or needle in b.genre.lower()
        ]

    def issueBook(
        self,
        book: Book,
        member: Member,
        issue_date: Optional[date] = None
    ) -> None:
        """
        Issues a book to a member for the member's allowed number of days.

        An already issued book is reserved for the member instead.

        Raises:
            BookNotFoundError
            MemberNotFoundError
            LimitReachedError
        """
        logger.info("issueBook called | bookId=%s memberId=%s", book.bookId, member.memberId)

        book = self._require_book(book)
        member = self._require_member(member)

        if book.isIssued:
            logger.info("Book already issued, reserving instead | bookId=%s", book.bookId)
            self.reserveBook(book, member)
            return

        self._issue(book, member, issue_date)

    def returnBook(
        self,
        book: Book,
        member: Member,
        return_date: Optional[date] = None
    ) -> None:
        """
        Returns a book held by the member and hands it to the next reserver.

        Raises:
            BookNotFoundError
            MemberNotFoundError
            NotIssuedByMemberError
            LimitReachedError: Only under the "propagate" hand-off policy,
                when the next reserver is at their limit.
        """
        logger.info("returnBook called | bookId=%s memberId=%s", book.bookId, member.memberId)

        book = self._require_book(book)
        member = self._require_member(member)

        if book.bookId not in member.currentlyIssuedBooks:
            raise NotIssuedByMemberError(
                f"This book was not issued by this member: bookId={book.bookId} memberId={member.memberId}"
            )

        member.currentlyIssuedBooks.remove(book.bookId)
        book.returnBook()
        logger.info("Return successful | bookId=%s memberId=%s", book.bookId, member.memberId)

        if book.reservationQueue:
            self._hand_off(book, return_date)

    def reserveBook(self, book: Book, member: Member) -> None:
        """
        Appends the member to the book's reservation queue.

        The same member may queue more than once.

        Raises:
            BookNotFoundError
            MemberNotFoundError
            InvalidStateError: If the book is available.
        """
        logger.info("reserveBook called | bookId=%s memberId=%s", book.bookId, member.memberId)

        book = self._require_book(book)
        member = self._require_member(member)

        if not book.isIssued:
            raise InvalidStateError(
                f"Book is available, no need to reserve: bookId={book.bookId}"
            )

        book.reservationQueue.append(member.memberId)
        logger.info(
            "Reservation added | bookId=%s memberId=%s position=%d",
            book.bookId,
            member.memberId,
            len(book.reservationQueue),
        )

    def viewIssuedBooks(
        self,
        member: Member,
        on_date: Optional[date] = None
    ) -> List[IssuedBookStatus]:
        """
        Reports days remaining until each of the member's books is due.
        """
        member = self._require_member(member)

        if on_date is None:
            on_date = date.today()

        statuses: List[IssuedBookStatus] = []
        for book_id in member.currentlyIssuedBooks:
            book = self._get_book(book_id)
            statuses.append(
                IssuedBookStatus(
                    bookId=book.bookId,
                    title=book.title,
                    dueDate=book.dueDate,
                    daysRemaining=(book.dueDate - on_date).days,
                )
            )
        return statuses

    def viewOverdueBooks(self, on_date: Optional[date] = None) -> List[Book]:
        """
        Returns issued books whose due date is strictly before on_date.
        """
        if on_date is None:
            on_date = date.today()
        return [b for b in self.books.values() if b.isIssued and b.dueDate < on_date]

    def getAvailableBooks(self) -> List[Book]:
        return [b for b in self.books.values() if not b.isIssued]

    def getBook(self, bookId: str) -> Book:
        return self._get_book(bookId)

    def getMember(self, memberId: str) -> Member:
        return self._get_member(memberId)

    def getHolder(self, book: Book) -> Optional[Member]:
        """
        Returns the member currently holding the book, or None.
        """
        book = self._require_book(book)
        if not book.isIssued:
            return None
        return self._get_member(book.issuedTo)

    def describeBook(self, book: Book) -> str:
        holder = self.getHolder(book)
        return book.summary(holder.name if holder else None)

    # Internal Helpers
    def _issue(self, book: Book, member: Member, issue_date: Optional[date]) -> None:
        if member.hasReachedLimit():
            raise LimitReachedError(
                f"{member.getMemberType()} has reached book limit: "
                f"memberId={member.memberId} limit={member.maxBooksAllowed}"
            )

        book.issueTo(member, member.getMaxAllowedDays(), issue_date)
        member.currentlyIssuedBooks.append(book.bookId)
        logger.info(
            "Issue successful | bookId=%s memberId=%s dueDate=%s",
            book.bookId,
            member.memberId,
            book.dueDate,
        )

    def _hand_off(self, book: Book, issue_date: Optional[date]) -> None:
        """
        Issues a just-returned book to the head of its reservation queue.

        "propagate": the head is dequeued and issued to; if they are at their
        limit LimitReachedError escapes, the book stays available and the
        head is not re-queued.

        "skip": reservers at their limit are passed over but keep their place
        in the queue; if nobody can take the book it stays available and the
        queue is cleared.
        """
        if self.handoff_policy == HANDOFF_PROPAGATE:
            head = self._get_member(book.reservationQueue.popleft())
            logger.info("Handing off to reserver | bookId=%s memberId=%s", book.bookId, head.memberId)
            self.issueBook(book, head, issue_date)
            return

        skipped: List[str] = []
        while book.reservationQueue:
            candidate = self._get_member(book.reservationQueue.popleft())
            if candidate.hasReachedLimit():
                logger.warning(
                    "Skipping reserver at book limit | bookId=%s memberId=%s",
                    book.bookId,
                    candidate.memberId,
                )
                skipped.append(candidate.memberId)
                continue

            logger.info("Handing off to reserver | bookId=%s memberId=%s", book.bookId, candidate.memberId)
            self._issue(book, candidate, issue_date)
            book.reservationQueue.extendleft(reversed(skipped))
            return

        logger.warning(
            "No reserver can take the book, leaving it available | bookId=%s skipped=%d",
            book.bookId,
            len(skipped),
        )

    def _get_book(self, bookId: str) -> Book:
        """
        Retrieves a book by ID or raises BookNotFoundError.
        """
        if bookId not in self.books:
            raise BookNotFoundError(f"Book not found: bookId={bookId}")
        return self.books[bookId]

    def _get_member(self, memberId: str) -> Member:
        """
        Retrieves a member by ID or raises MemberNotFoundError.
        """
        if memberId not in self.members:
            raise MemberNotFoundError(f"Member not found: memberId={memberId}")
        return self.members[memberId]

    def _require_book(self, book: Book) -> Book:
        """
        Returns book if it is the catalogued instance, else raises BookNotFoundError.
        """
        if self.books.get(book.bookId) is not book:
            raise BookNotFoundError(f"Book is not in the catalog: bookId={book.bookId}")
        return book

    def _require_member(self, member: Member) -> Member:
        """
        Returns member if it is the registered instance, else raises MemberNotFoundError.
        """
        if self.members.get(member.memberId) is not member:
            raise MemberNotFoundError(f"Member is not registered: memberId={member.memberId}")
        return member


# Main Program
def main(argv: Optional[Sequence[str]] = None) -> None:
    """
    Demonstration driver.

    Demonstrated scenarios:
        - registering members and adding books
        - searching the catalog
        - issuing a book and viewing the member's due dates
        - reserving an issued book and handing it off on return
        - hitting a member's book limit
    """
    parser = argparse.ArgumentParser(description="Demonstrate the library catalog operations.")
    parser.add_argument("--log-level", choices=LOG_LEVELS, help="Override LIBRARY_LOG_LEVEL")
    parser.add_argument(
        "--handoff-policy",
        choices=HANDOFF_POLICIES,
        help="Override LIBRARY_HANDOFF_POLICY",
    )
    args = parser.parse_args(argv)

    if args.log_level:
        logger.setLevel(args.log_level)

    print("\n=== Library Catalog Demo ===\n")

    library = Library(handoff_policy=args.handoff_policy)

    # 1. Register Members
    print("Registering members...")
    librarian = Member.librarian("Alice", "alice@lib.com", "1234567890")
    student = Member.student("John", "john@student.com", "1111111111")
    guest = Member.guest("Grace", "grace@guest.com", "2222222222")
    for m in (librarian, student, guest):
        library.registerMember(m)

    # 2. Add Books
    print("Adding books...")
    java = Book("The Java Programming Language", "Ken Arnold", "Programming")
    effective = Book("Effective Java", "Joshua Bloch", "Programming")
    dune = Book("Dune", "Frank Herbert", "Science Fiction")
    for b in (java, effective, dune):
        library.addBook(b)

    # 3. Search
    print("\nSearching for 'java':")
    for b in library.searchBooks("java"):
        print(f"  {library.describeBook(b)}")

    # 4. Issue And View Due Dates
    print("\nIssuing books to John...")
    library.issueBook(java, student)
    library.issueBook(dune, student)
    for status in library.viewIssuedBooks(student):
        print(f"  {status}")

    # 5. Reservation Hand-off
    print("\nGrace reserves 'Dune', John returns it...")
    library.reserveBook(dune, guest)
    library.returnBook(dune, student)
    print(f"  {library.describeBook(dune)}")

    # 6. Limit Reached
    print("\nGrace tries to borrow a second book (guest limit is 1)...")
    try:
        library.issueBook(effective, guest)
    except LimitReachedError as e:
        print("Expected violation:", e)

    # 7. Overdue Books
    print("\nOverdue books today:", len(library.viewOverdueBooks()))

    print("\n=== Demo Completed ===\n")


if __name__ == "__main__":
    try:
        main()
    except LibraryError as e:
        logger.error("LibraryError bubbled to top-level | %s", e)
        raise
    except Exception as e:
        logger.exception("Unhandled fatal error | %s", e)
        raise
