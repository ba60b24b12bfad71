"""Shared test fixtures."""

from datetime import date

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from fieldops import config
from fieldops.database import Base, get_db
from fieldops.domain.jobs.service import JobService
from fieldops.domain.quotes.schemas import QuoteCreate
from fieldops.domain.quotes.service import QuoteService
from fieldops.domain.team.schemas import TeamMemberCreate
from fieldops.domain.team.service import TeamService
from fieldops.main import app
from fieldops.models import Contractor, Job
from fieldops.services import notification_service

# Monday
JOB_DATE = date(2024, 6, 3)


@pytest.fixture(autouse=True)
def no_outbound_services(monkeypatch):
    """Keep tests off the network whatever the local .env says."""
    monkeypatch.setattr(config, "NOTIFICATION_WEBHOOK_URL", None)
    monkeypatch.setattr(config, "CALENDAR_SERVICE_URL", None)
    monkeypatch.setattr(config, "CHAT_SERVICE_URL", None)


@pytest.fixture
def engine():
    """Provide an in-memory database shared by every session in the test."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    yield session
    session.close()


@pytest.fixture
def client(db):
    """Provide a TestClient whose requests use the test session."""

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def notifications(monkeypatch):
    """Capture notification events instead of sending them."""
    sent = []

    def fake_notify(contractor_id, event_type, payload, webhook_url=None):
        sent.append({"contractor_id": contractor_id, "event_type": event_type, "payload": payload})
        return True

    monkeypatch.setattr(notification_service, "notify", fake_notify)
    return sent


@pytest.fixture
def contractor(db):
    contractor = Contractor(name="Acme Heating & Air", email="office@acmehvac.com")
    db.add(contractor)
    db.commit()
    return contractor


@pytest.fixture
def team_service(db):
    return TeamService(db)


@pytest.fixture
def quote_service(db):
    return QuoteService(db)


@pytest.fixture
def job_service(db):
    return JobService(db)


def _add_technician(team_service, contractor, stats=None, **fields):
    member = team_service.add_member(contractor.id, TeamMemberCreate(**fields))
    if stats:
        member.stats = {**member.stats, **stats}
        team_service.db.commit()
    return member


@pytest.fixture
def technicians(team_service, contractor):
    """Create a team covering each eligibility outcome for an HVAC job on JOB_DATE."""
    alice = _add_technician(
        team_service, contractor,
        name="Alice Moreno",
        skills=[{"skillId": "hvac_repair", "proficiency": "expert", "yearsExperience": 8}],
        certifications=[{"certId": "epa_608", "expiresAt": "2026-12-31"}],
        stats={"firstTimeFixRate": 0.9, "onTimeRate": 0.95, "averageRating": 4.8},
    )
    bob = _add_technician(
        team_service, contractor,
        name="Bob Lee",
        skills=[{"skillId": "hvac_repair", "proficiency": "intermediate", "yearsExperience": 2}],
        certifications=[{"certId": "epa_608"}],
    )
    carol = _add_technician(
        team_service, contractor,
        name="Carol Diaz",
        skills=[{"skillId": "hvac_repair", "proficiency": "advanced", "yearsExperience": 5}],
    )
    dave = _add_technician(
        team_service, contractor,
        name="Dave Kim",
        skills=[{"skillId": "hvac_repair", "proficiency": "expert", "yearsExperience": 12}],
        certifications=[{"certId": "epa_608"}],
        timeOff=[{"startDate": "2024-06-01", "endDate": "2024-06-05", "reason": "Vacation"}],
    )
    erin = _add_technician(
        team_service, contractor,
        name="Erin Walsh",
        skills=[{"skillId": "hvac_repair", "proficiency": "advanced", "yearsExperience": 4}],
        certifications=[{"certId": "epa_608", "expiresAt": "2024-01-15"}],
    )
    return {"alice": alice, "bob": bob, "carol": carol, "dave": dave, "erin": erin}


@pytest.fixture
def make_quote(quote_service, contractor):
    """Factory for quotes; one line item so total == unit price when untaxed."""

    def _make_quote(unit_price=500.0, deposit_percent=0, **fields):
        data = QuoteCreate(
            customer={"name": "Jordan Smith", "email": "Jordan@Example.com", "phone": "555-010-4477"},
            title="AC repair",
            lineItems=[{"description": "Compressor repair", "quantity": 1, "unitPrice": unit_price}],
            depositRequired=deposit_percent > 0,
            depositType="percentage",
            depositValue=deposit_percent,
            requiredSkills=["hvac_repair"],
            requiredCertifications=["epa_608"],
            status="sent",
            **fields,
        )
        return quote_service.create_quote(contractor.id, data)

    return _make_quote


@pytest.fixture
def make_job(quote_service, make_quote, contractor, db):
    """Factory for jobs created through quote acceptance."""

    def _make_job(deposit_percent=0, **fields):
        quote = make_quote(deposit_percent=deposit_percent, **fields)
        result = quote_service.accept_quote(contractor.id, quote.id)
        return db.get(Job, result.jobId)

    return _make_job
