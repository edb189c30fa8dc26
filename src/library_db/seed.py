"""
Sample and demo data for the library database.

Two data sets are available:

- ``load_sample_data``: the four books, four members and four loans of the
  reference script. Loans are inserted as raw ledger rows, so the books keep
  their listed copy counts (3, 2, 1, 4).
- ``generate_demo_data``: a larger, reproducible data set generated with
  Faker. Loans go through ``CirculationRepository.borrow_book`` so the copy
  counts stay consistent with the ledger.
"""

import logging
import random
from dataclasses import dataclass
from datetime import date, timedelta

from faker import Faker
from sqlalchemy.orm import Session

from .database.circulation_repository import BorrowCreateSchema, CirculationRepository
from .database.exceptions import BorrowRejectedError
from .database.schema import Book, BorrowRecord, Member
from .database.session import safe_commit, safe_flush

logger = logging.getLogger(__name__)

GENRES = [
    "Fiction",
    "Dystopian",
    "Romance",
    "Mystery",
    "Science Fiction",
    "Fantasy",
    "Biography",
    "History",
    "Poetry",
]


@dataclass
class SeedSummary:
    """Row counts inserted by a seeding run."""

    books: int = 0
    members: int = 0
    borrow_records: int = 0
    returned: int = 0
    rejected: int = 0


def load_sample_data(session: Session) -> SeedSummary:
    """
    Insert the reference sample rows in one transaction.

    Expects empty tables: ids 1-4 are assumed for the loan rows.
    """
    books = [
        Book(
            title="To Kill a Mockingbird",
            author="Harper Lee",
            genre="Fiction",
            publication_year=1960,
            isbn="9780446310789",
            available_copies=3,
        ),
        Book(
            title="1984",
            author="George Orwell",
            genre="Dystopian",
            publication_year=1949,
            isbn="9780451524935",
            available_copies=2,
        ),
        Book(
            title="The Great Gatsby",
            author="F. Scott Fitzgerald",
            genre="Fiction",
            publication_year=1925,
            isbn="9780743273565",
            available_copies=1,
        ),
        Book(
            title="Pride and Prejudice",
            author="Jane Austen",
            genre="Romance",
            publication_year=1813,
            isbn="9780141439518",
            available_copies=4,
        ),
    ]
    session.add_all(books)

    members = [
        Member(
            first_name="John",
            last_name="Doe",
            email="john.doe@email.com",
            phone="555-0101",
            join_date=date(2023, 1, 15),
        ),
        Member(
            first_name="Jane",
            last_name="Smith",
            email="jane.smith@email.com",
            phone="555-0102",
            join_date=date(2023, 3, 22),
        ),
        Member(
            first_name="Alice",
            last_name="Johnson",
            email="alice.j@email.com",
            phone="555-0103",
            join_date=date(2024, 2, 10),
        ),
        Member(
            first_name="Bob",
            last_name="Williams",
            email="bob.w@email.com",
            phone="555-0104",
            join_date=date(2024, 6, 5),
        ),
    ]
    session.add_all(members)
    safe_flush(session, "load sample catalog")

    loans = [
        (books[0], members[0], date(2025, 3, 1), None, date(2025, 3, 15)),
        (books[1], members[1], date(2025, 3, 5), date(2025, 3, 12), date(2025, 3, 19)),
        (books[2], members[2], date(2025, 4, 1), None, date(2025, 4, 15)),
        (books[0], members[3], date(2025, 4, 10), None, date(2025, 4, 24)),
    ]
    session.add_all(
        BorrowRecord(
            book_id=book.id,
            member_id=member.id,
            borrow_date=borrowed,
            return_date=returned,
            due_date=due,
        )
        for book, member, borrowed, returned, due in loans
    )

    safe_commit(session, "load sample data")
    logger.info(
        "Loaded sample data: %d books, %d members, %d loans", len(books), len(members), len(loans)
    )
    return SeedSummary(books=len(books), members=len(members), borrow_records=len(loans))


def generate_isbn13(rng: random.Random) -> str:
    """Generate a valid ISBN-13 number."""
    body = "978" + "".join(str(rng.randint(0, 9)) for _ in range(9))
    total = sum(int(digit) * (3 if i % 2 else 1) for i, digit in enumerate(body))
    check_digit = (10 - (total % 10)) % 10
    return f"{body}{check_digit}"


def generate_demo_data(
    session: Session,
    books: int = 50,
    members: int = 25,
    loans: int = 100,
    seed: int = 42,
    today: date | None = None,
) -> SeedSummary:
    """
    Generate a randomized but reproducible data set.

    Roughly two thirds of the loans are returned again. Borrows that hit a
    book with no copies left are counted as rejected and skipped.

    Args:
        session: Database session
        books: Number of books to create
        members: Number of members to create
        loans: Number of borrow attempts
        seed: Seed for Faker and the random generator
        today: Latest possible borrow date; defaults to today
    """
    fake = Faker()
    fake.seed_instance(seed)
    rng = random.Random(seed)
    today = today or date.today()
    summary = SeedSummary()

    isbns: set[str] = set()
    book_rows = []
    for _ in range(books):
        isbn = generate_isbn13(rng)
        while isbn in isbns:
            isbn = generate_isbn13(rng)
        isbns.add(isbn)
        book_rows.append(
            Book(
                title=fake.catch_phrase()[:100],
                author=fake.name()[:50],
                genre=rng.choice(GENRES),
                publication_year=rng.randint(1800, today.year),
                isbn=isbn,
                available_copies=rng.randint(0, 5),
            )
        )
    session.add_all(book_rows)

    member_rows = [
        Member(
            first_name=fake.first_name()[:50],
            last_name=fake.last_name()[:50],
            email=f"member{i + 1:04d}.{fake.user_name()}@example.com"[:100],
            phone=fake.numerify("555-####"),
            join_date=fake.date_between(start_date=today - timedelta(days=5 * 365), end_date=today),
        )
        for i in range(members)
    ]
    session.add_all(member_rows)
    safe_commit(session, "generate demo catalog")
    summary.books = len(book_rows)
    summary.members = len(member_rows)

    if not book_rows or not member_rows:
        return summary

    circulation = CirculationRepository(session)
    for _ in range(loans):
        book = rng.choice(book_rows)
        member = rng.choice(member_rows)
        borrow_date = today - timedelta(days=rng.randint(0, 120))
        try:
            record = circulation.borrow_book(
                BorrowCreateSchema(book_id=book.id, member_id=member.id, borrow_date=borrow_date)
            )
        except BorrowRejectedError:
            summary.rejected += 1
            continue
        summary.borrow_records += 1

        if rng.random() < 0.66:
            returned = min(borrow_date + timedelta(days=rng.randint(1, 30)), today)
            circulation.return_book(record.id, return_date=returned)
            summary.returned += 1

    logger.info(
        "Generated demo data: %d books, %d members, %d loans (%d returned, %d rejected)",
        summary.books,
        summary.members,
        summary.borrow_records,
        summary.returned,
        summary.rejected,
    )
    return summary
