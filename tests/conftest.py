"""
Test fixtures: in-memory SQLite database, signed tokens and a small curriculum
"""
import hashlib
import hmac
import json
import os
import time

# Settings are read at import time, so configure the environment before importing lingo
os.environ.update({
    "DATABASE_URL": "sqlite://",
    "CACHE_ENABLED": "false",
    "JWT_SECRET_KEY": "test-secret",
    "STRIPE_API_KEY": "sk_test_dummy",
    "STRIPE_WEBHOOK_SECRET": "whsec_test_secret",
    "LOG_LEVEL": "WARNING",
})

from datetime import timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from lingo.database import Base, get_db
from lingo.models import (
    Challenge, ChallengeOption, ChallengeProgress, ChallengeType,
    Course, Lesson, Unit, UserProgress, UserSubscription
)
from lingo.services.subscription_service import utcnow
from lingo.utils.auth import create_access_token
from lingo.utils.events import event_bus
from lingo.utils.rate_limiter import rate_limiter

USER_ID = "user_1"


@pytest.fixture
def engine():
    """One shared in-memory connection so the API thread sees fixture data"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


def _challenge(lesson, order, question, correct_text="yes", wrong_text="no"):
    challenge = Challenge(type=ChallengeType.SELECT, question=question, order=order)
    challenge.options = [
        ChallengeOption(text=wrong_text, correct=False),
        ChallengeOption(text=correct_text, correct=True),
    ]
    lesson.challenges.append(challenge)
    return challenge


@pytest.fixture
def curriculum(db_session):
    """
    Spanish: unit 1 (lessons "Nouns" with 2 challenges, "Verbs" with 1),
    unit 2 (lesson "Empty" without challenges, "Phrases" with 1).
    Units and lessons are inserted out of order on purpose.
    French: one lesson with one challenge. German: no units.
    """
    spanish = Course(title="Spanish", image_src="/es.svg")
    unit_two = Unit(title="Unit 2", description="Phrases", order=2)
    unit_one = Unit(title="Unit 1", description="Basics", order=1)
    spanish.units.extend([unit_two, unit_one])

    verbs = Lesson(title="Verbs", order=2)
    nouns = Lesson(title="Nouns", order=1)
    unit_one.lessons.extend([verbs, nouns])

    phrases = Lesson(title="Phrases", order=2)
    empty = Lesson(title="Empty", order=1)
    unit_two.lessons.extend([phrases, empty])

    man = _challenge(nouns, 1, 'Which one of these is "the man"?', "el hombre", "la mujer")
    woman = _challenge(nouns, 2, 'Which one of these is "the woman"?', "la mujer", "el hombre")
    run = _challenge(verbs, 1, '"to run"', "correr", "comer")
    hello = _challenge(phrases, 1, '"hello"', "hola", "adios")

    french = Course(title="French", image_src="/fr.svg")
    french_unit = Unit(title="Unit 1", description="Basics", order=1)
    french_lesson = Lesson(title="Nouns", order=1)
    french.units.append(french_unit)
    french_unit.lessons.append(french_lesson)
    bread = _challenge(french_lesson, 1, '"bread"', "pain", "eau")

    german = Course(title="German", image_src="/de.svg")

    db_session.add_all([spanish, french, german])
    db_session.commit()

    return SimpleNamespace(
        spanish=spanish, french=french, german=german,
        unit_one=unit_one, unit_two=unit_two,
        nouns=nouns, verbs=verbs, empty=empty, phrases=phrases,
        man=man, woman=woman, run=run, hello=hello, bread=bread,
    )


@pytest.fixture
def learner(db_session, curriculum):
    """USER_ID learning Spanish with full hearts and no points"""
    progress = UserProgress(
        user_id=USER_ID,
        user_name="Test User",
        user_image_src="/mascot.svg",
        active_course_id=curriculum.spanish.id,
        hearts=5,
        points=0
    )
    db_session.add(progress)
    db_session.commit()
    return progress


def set_hearts(db_session, user_id, hearts, points=None):
    progress = db_session.query(UserProgress).filter(UserProgress.user_id == user_id).one()
    progress.hearts = hearts
    if points is not None:
        progress.points = points
    db_session.commit()
    return progress


def complete_challenge(db_session, user_id, challenge, completed=True):
    row = ChallengeProgress(user_id=user_id, challenge_id=challenge.id, completed=completed)
    db_session.add(row)
    db_session.commit()
    return row


def subscribe(db_session, user_id, period_end=None, price_id="price_pro"):
    subscription = UserSubscription(
        user_id=user_id,
        stripe_customer_id=f"cus_{user_id}",
        stripe_subscription_id=f"sub_{user_id}",
        stripe_price_id=price_id,
        stripe_current_period_end=period_end or utcnow() + timedelta(days=30)
    )
    db_session.add(subscription)
    db_session.commit()
    return subscription


@pytest.fixture
def published_events():
    """Collect every ProgressChanged event published during the test"""
    events = []
    event_bus.subscribe(events.append)
    yield events
    event_bus.unsubscribe(events.append)


def auth_headers_for(user_id=USER_ID, **claims):
    token = create_access_token({"sub": user_id, **claims})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers():
    return auth_headers_for(USER_ID, name="Test User", email="test@example.com")


@pytest.fixture
def api_client(session_factory):
    """FastAPI TestClient bound to the in-memory database"""
    from fastapi.testclient import TestClient
    from lingo.main import app

    def _get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    rate_limiter.reset()
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


WEBHOOK_SECRET = "whsec_test_secret"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode('utf-8')}".encode("utf-8")
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


def event_payload(event_type: str, data: dict) -> bytes:
    return json.dumps({"id": "evt_1", "type": event_type, "data": {"object": data}}).encode("utf-8")


def stripe_subscription(subscription_id="sub_1", period_end=None):
    period_end = period_end or int(time.time()) + 30 * 24 * 3600
    return {
        "id": subscription_id,
        "customer": "cus_1",
        "current_period_end": period_end,
        "items": {"data": [{"price": {"id": "price_pro"}}]},
    }
