import pytest

from config import Settings
from context import build_context
from models import Book, User, new_id, utc_now


@pytest.fixture
def ctx(tmp_path, request):
    # Each test gets its own database file
    db_file = str(tmp_path / f"test_{request.node.name}.db")
    test_settings = Settings(jwt_secret_key="test-secret", bcrypt_rounds=4, jwt_expiration_minutes=60)
    context = build_context(test_settings, db_file=db_file)
    context.initialize()
    yield context


@pytest.fixture
def make_user(ctx):
    """Insert a user directly, bypassing registration side effects."""

    def _make_user(name="Test User", email=None, password="password123", approved=True, admin=False):
        user = User(
            id=new_id(),
            name=name,
            email=email or f"{new_id()[:8]}@example.com",
            password_hash=ctx.hasher.hash(password),
            phone_number="1234567890",
            is_approved=approved,
            is_admin=admin,
            created_at=utc_now(),
        )
        return ctx.users.insert(user)

    return _make_user


@pytest.fixture
def make_book(ctx):
    def _make_book(title="Test Book", author="Test Author", book_id=None):
        book = Book(id=book_id or new_id(), title=title, author=author, created_at=utc_now())
        return ctx.books.add(book)

    return _make_book
