"""
HTTP API: authentication, learning flow, shop and billing webhooks
"""
import json
from datetime import timedelta
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pytest
import stripe

from lingo.models import UserProgress
from lingo.services.subscription_service import utcnow
from lingo.utils.cache import cache_service

from conftest import (
    USER_ID, auth_headers_for, complete_challenge, event_payload, set_hearts, sign,
    stripe_subscription, subscribe
)


@pytest.mark.integration
class TestAuthentication:

    def test_missing_token(self, api_client):
        response = api_client.get("/api/progress")

        assert response.status_code == 401
        assert response.json()["error"] == "unauthorized"

    def test_token_signed_with_another_key(self, api_client):
        from jose import jwt
        token = jwt.encode({"sub": USER_ID}, "other-secret", algorithm="HS256")

        response = api_client.get("/api/progress", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 401

    def test_token_without_subject(self, api_client):
        from lingo.utils.auth import create_access_token
        headers = {"Authorization": f"Bearer {create_access_token({'name': 'Anonymous'})}"}

        assert api_client.get("/api/progress", headers=headers).status_code == 401


@pytest.mark.integration
class TestCourses:

    def test_list_courses(self, api_client, auth_headers, curriculum, learner):
        response = api_client.get("/api/courses", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert {course["title"] for course in data["courses"]} == {"Spanish", "French", "German"}
        assert data["active_course_id"] == curriculum.spanish.id

    def test_course_detail_is_ordered(self, api_client, auth_headers, curriculum):
        response = api_client.get(f"/api/courses/{curriculum.spanish.id}", headers=auth_headers)

        assert response.status_code == 200
        units = response.json()["units"]
        assert [unit["order"] for unit in units] == [1, 2]
        assert [lesson["title"] for lesson in units[0]["lessons"]] == ["Nouns", "Verbs"]

    def test_select_course_creates_progress(self, api_client, curriculum, db_session):
        french_id = curriculum.french.id
        headers = auth_headers_for("newcomer", name="New Learner", picture="/new.png")

        response = api_client.post(f"/api/courses/{french_id}/select", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert (data["hearts"], data["points"], data["active_course_id"]) == (5, 0, french_id)
        db_session.expire_all()
        progress = db_session.query(UserProgress).filter(UserProgress.user_id == "newcomer").one()
        assert progress.user_name == "New Learner"
        assert progress.user_image_src == "/new.png"

    def test_select_unknown_course(self, api_client, auth_headers, curriculum):
        response = api_client.post("/api/courses/9999/select", headers=auth_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "Course not found"

    def test_select_empty_course(self, api_client, auth_headers, curriculum):
        response = api_client.post(f"/api/courses/{curriculum.german.id}/select", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Course is empty"


@pytest.mark.integration
class TestLearn:

    def test_learn_view(self, api_client, auth_headers, curriculum, learner):
        response = api_client.get("/api/learn", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["course_title"] == "Spanish"
        assert data["active_lesson"]["id"] == curriculum.nouns.id
        assert data["hearts"] == 5

    def test_cached_learn_view_rechecks_subscription(self, api_client, auth_headers, curriculum, learner, db_session):
        store = {}
        client = MagicMock()
        client.get.side_effect = store.get
        client.setex.side_effect = lambda key, ttl, value: store.__setitem__(key, value)
        subscription = subscribe(db_session, USER_ID, period_end=utcnow() - timedelta(hours=20))

        with patch.object(cache_service, "redis_client", client):
            first = api_client.get("/api/learn", headers=auth_headers).json()

            # The grace window runs out without any billing event
            subscription.stripe_current_period_end = utcnow() - timedelta(days=2)
            db_session.commit()

            second = api_client.get("/api/learn", headers=auth_headers).json()

        cached = json.loads(store[f"view:learn:{USER_ID}"])
        assert "has_active_subscription" not in cached
        assert first["has_active_subscription"] is True
        assert second["has_active_subscription"] is False
        assert second["units"] == first["units"]
        assert client.setex.call_count == 1

    def test_learn_without_course(self, api_client, auth_headers, curriculum):
        assert api_client.get("/api/learn", headers=auth_headers).status_code == 404

    def test_active_lesson(self, api_client, auth_headers, curriculum, learner, db_session):
        complete_challenge(db_session, USER_ID, curriculum.man)

        response = api_client.get("/api/lessons/active", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["title"] == "Nouns"
        assert data["percentage"] == 50
        assert [c["completed"] for c in data["challenges"]] == [True, False]

    def test_specific_lesson(self, api_client, auth_headers, curriculum, learner):
        response = api_client.get(f"/api/lessons/{curriculum.phrases.id}", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["challenges"][0]["question"] == '"hello"'

    def test_unknown_lesson(self, api_client, auth_headers, curriculum, learner):
        assert api_client.get("/api/lessons/9999", headers=auth_headers).status_code == 404


@pytest.mark.integration
class TestChallenges:

    def test_correct_answer_returns_empty_body(self, api_client, auth_headers, curriculum, learner):
        response = api_client.post(f"/api/challenges/{curriculum.man.id}/correct", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {}
        assert api_client.get("/api/progress", headers=auth_headers).json()["points"] == 10

    def test_out_of_hearts(self, api_client, auth_headers, curriculum, learner, db_session):
        set_hearts(db_session, USER_ID, 0)
        challenge_id = curriculum.man.id

        correct = api_client.post(f"/api/challenges/{challenge_id}/correct", headers=auth_headers)
        incorrect = api_client.post(f"/api/challenges/{challenge_id}/incorrect", headers=auth_headers)

        assert correct.json() == {"error": "hearts"}
        assert incorrect.json() == {"error": "hearts"}
        assert api_client.get("/api/progress", headers=auth_headers).json()["points"] == 0

    def test_incorrect_answer_costs_a_heart(self, api_client, auth_headers, curriculum, learner):
        response = api_client.post(f"/api/challenges/{curriculum.man.id}/incorrect", headers=auth_headers)

        assert response.json() == {}
        assert api_client.get("/api/progress", headers=auth_headers).json()["hearts"] == 4

    def test_subscriber_answers_free(self, api_client, auth_headers, curriculum, learner, db_session):
        subscribe(db_session, USER_ID)

        response = api_client.post(f"/api/challenges/{curriculum.man.id}/incorrect", headers=auth_headers)

        assert response.json() == {}
        progress = api_client.get("/api/progress", headers=auth_headers).json()
        assert progress["hearts"] == 5
        assert progress["has_active_subscription"] is True

    def test_graded_answer(self, api_client, auth_headers, curriculum, learner):
        correct = next(o for o in curriculum.man.options if o.correct)

        response = api_client.post(
            f"/api/challenges/{curriculum.man.id}/answer",
            headers=auth_headers,
            json={"option_id": correct.id}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["correct"] is True
        assert data["outcome"] == "completed"
        assert data["points"] == 10
        assert "error" not in data

    def test_graded_answer_rejects_foreign_option(self, api_client, auth_headers, curriculum, learner):
        foreign = curriculum.hello.options[0]

        response = api_client.post(
            f"/api/challenges/{curriculum.man.id}/answer",
            headers=auth_headers,
            json={"option_id": foreign.id}
        )

        assert response.status_code == 404

    def test_unknown_challenge(self, api_client, auth_headers, curriculum, learner):
        assert api_client.post("/api/challenges/9999/correct", headers=auth_headers).status_code == 404

    def test_completing_lesson_moves_active_lesson(self, api_client, auth_headers, curriculum, learner):
        for challenge in (curriculum.man, curriculum.woman):
            api_client.post(f"/api/challenges/{challenge.id}/correct", headers=auth_headers)

        response = api_client.get("/api/lessons/active", headers=auth_headers)

        assert response.json()["title"] == "Verbs"


@pytest.mark.integration
class TestProgressViews:

    def test_leaderboard(self, api_client, auth_headers, curriculum, learner, db_session):
        set_hearts(db_session, USER_ID, 5, points=30)

        response = api_client.get("/api/leaderboard", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["users"][0] == {
            "user_id": USER_ID,
            "user_name": "Test User",
            "user_image_src": "/mascot.svg",
            "points": 30,
        }

    def test_quests(self, api_client, auth_headers, curriculum, learner, db_session):
        set_hearts(db_session, USER_ID, 5, points=50)

        data = api_client.get("/api/quests", headers=auth_headers).json()

        assert data["points"] == 50
        assert [q["completed"] for q in data["quests"]] == [True, True, False, False, False]


@pytest.mark.integration
class TestShop:

    def test_refill(self, api_client, auth_headers, curriculum, learner, db_session):
        set_hearts(db_session, USER_ID, 1, points=20)

        response = api_client.post("/api/shop/refill", headers=auth_headers)

        assert response.status_code == 200
        assert (response.json()["hearts"], response.json()["points"]) == (5, 10)

    def test_refill_full_hearts(self, api_client, auth_headers, curriculum, learner):
        response = api_client.post("/api/shop/refill", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["message"] == "Hearts are already full"

    def test_subscription_status(self, api_client, auth_headers, curriculum, learner):
        data = api_client.get("/api/subscription", headers=auth_headers).json()
        assert data["is_active"] is False

    def test_checkout(self, api_client, auth_headers, curriculum, learner):
        session = SimpleNamespace(url="https://checkout.stripe.test/session")

        with patch.object(stripe.checkout.Session, "create", return_value=session):
            response = api_client.post("/api/subscription/checkout", headers=auth_headers)

        assert response.status_code == 200
        assert response.json() == {"url": session.url}

    def test_checkout_provider_down(self, api_client, auth_headers, curriculum, learner):
        with patch.object(stripe.checkout.Session, "create", side_effect=stripe.APIConnectionError("down")):
            response = api_client.post("/api/subscription/checkout", headers=auth_headers)

        assert response.status_code == 502


@pytest.mark.integration
class TestStripeWebhook:

    def test_rejects_bad_signature(self, api_client):
        payload = event_payload("checkout.session.completed", {})

        response = api_client.post(
            "/api/webhooks/stripe",
            content=payload,
            headers={"Stripe-Signature": sign(payload, secret="whsec_wrong")}
        )

        assert response.status_code == 400

    def test_rejects_missing_signature(self, api_client):
        response = api_client.post("/api/webhooks/stripe", content=event_payload("invoice.payment_succeeded", {}))
        assert response.status_code == 400

    def test_checkout_completed_grants_subscription(self, api_client, auth_headers, curriculum, learner):
        payload = event_payload("checkout.session.completed", {
            "subscription": "sub_1",
            "metadata": {"userId": USER_ID},
        })

        with patch.object(stripe.Subscription, "retrieve", return_value=stripe_subscription()):
            response = api_client.post(
                "/api/webhooks/stripe",
                content=payload,
                headers={"Stripe-Signature": sign(payload)}
            )

        assert response.status_code == 200
        assert response.json() == {"received": True, "event_type": "checkout.session.completed"}
        assert api_client.get("/api/subscription", headers=auth_headers).json()["is_active"] is True

    def test_unhandled_event_is_acknowledged(self, api_client):
        payload = json.dumps({"id": "evt_2", "type": "customer.updated", "data": {"object": {}}}).encode("utf-8")

        response = api_client.post("/api/webhooks/stripe", content=payload, headers={"Stripe-Signature": sign(payload)})

        assert response.status_code == 200


@pytest.mark.integration
class TestService:

    def test_health(self, api_client):
        response = api_client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["cache"] == "disabled"

    def test_rate_limit(self, api_client, auth_headers, curriculum, learner):
        from lingo.utils.rate_limiter import rate_limiter

        with patch.object(rate_limiter, "requests_per_minute", 2):
            assert api_client.get("/api/progress", headers=auth_headers).status_code == 200
            assert api_client.get("/api/progress", headers=auth_headers).status_code == 200
            response = api_client.get("/api/progress", headers=auth_headers)

        assert response.status_code == 429
        assert response.json()["retry_after"] == 60
