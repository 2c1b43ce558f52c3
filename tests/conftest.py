"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from typing import Generator, List, Tuple
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from logbook_ledger.api.main import create_app
from logbook_ledger.api.dependencies import get_clock, get_llm_client
from logbook_ledger.domain.prompts import StatementPrompt
from logbook_ledger.infrastructure.database.models import Base, User
from logbook_ledger.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# "Now" for every test that resolves a billing cycle
FIXED_NOW = datetime(2024, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


def fixed_clock() -> datetime:
    return FIXED_NOW


class FakeLLMClient:
    """Deterministic stand-in for the LLM provider"""

    def __init__(self, completion: str = "[]", error: Exception | None = None):
        self.completion = completion
        self.error = error
        self.prompts: List[StatementPrompt] = []

    async def complete(self, prompt: StatementPrompt) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.completion


def _pdf_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def make_pdf(runs: List[Tuple[float, float, str]]) -> bytes:
    """
    Build a single-page PDF with Helvetica text runs placed at (x, y).

    Runs sharing a y coordinate land on the same visual line.
    """
    content = "BT /F1 10 Tf " + " ".join(
        f"1 0 0 1 {x} {y} Tm ({_pdf_escape(text)}) Tj" for x, y, text in runs
    ) + " ET"
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        "<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        "/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        f"<< /Length {len(content)} >>\nstream\n{content}\nendstream",
        "<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")

    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("latin-1")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\n"
        f"startxref\n{xref_offset}\n%%EOF\n"
    ).encode("latin-1")
    return out


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def fake_llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture
def client(db: Session, fake_llm: FakeLLMClient) -> TestClient:
    """Create FastAPI test client with test database, fixed clock and fake LLM"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_clock] = lambda: fixed_clock
    app.dependency_overrides[get_llm_client] = lambda: fake_llm
    return TestClient(app)


@pytest.fixture
def make_user(db: Session):
    """Factory for persisted users"""

    def _make_user(user_id: str = "user_1", start_day: int | None = 25, currency_id: int = 1) -> User:
        user = User(id=user_id, username=user_id, currency_id=currency_id, monthly_start_date=start_day)
        db.add(user)
        db.commit()
        return user

    return _make_user


@pytest.fixture
def statement_pdf() -> bytes:
    """Two-row statement with date, description and amount columns"""
    return make_pdf(
        [
            (72, 700, "2024-02-24"),
            (160, 700, "UPI/zomatoonlineord/ZomatoOnline Ord DR"),
            (450, 700, "450.00"),
            (72, 680, "2024-03-01"),
            (160, 680, "NEFT-TATA CONSULTANCY SERVICES LIMITED CR"),
            (450, 680, "85,000.00"),
        ]
    )


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def pdf_factory():
    return make_pdf
