"""
Tests for the FastAPI webhook server.
"""

import json

import pytest
from fastapi.testclient import TestClient

from brain_teaser.app import build_dispatcher, create_app
from brain_teaser.config import Config, RetryConfig
from brain_teaser.dispatcher import CommandDispatcher
from brain_teaser.gateway import (
    ActionKind,
    DeliveryExecutor,
    MockGateway,
    PisiGateway,
    failed_response,
)
from brain_teaser.quiz import (
    InMemoryScoreStore,
    InMemorySessionStore,
    ProgressionEngine,
    QuestionBankProvider,
    StoreError,
)
from brain_teaser.quiz.bank import SAMPLE_QUESTIONS

SUBSCRIBER = "2547000000"


async def no_sleep(seconds):
    return None


class UnavailableSessionStore(InMemorySessionStore):
    """Session store whose backend is down."""

    async def set(self, session):
        raise StoreError("Session write failed: connection refused")


def make_dispatcher(gateway, questions=SAMPLE_QUESTIONS, store=None):
    engine = ProgressionEngine(
        store=store if store is not None else InMemorySessionStore(),
        provider=QuestionBankProvider(questions, shuffle=False),
        scores=InMemoryScoreStore(),
        question_count=10,
    )
    retry = RetryConfig(max_attempts=2, base_delay_ms=0, max_delay_ms=0, jitter_ms=0)
    return CommandDispatcher(engine, DeliveryExecutor(gateway, retry=retry, sleep=no_sleep))


@pytest.fixture
def gateway():
    return MockGateway()


@pytest.fixture
def client(gateway):
    app = create_app(make_dispatcher(gateway))
    with TestClient(app) as test_client:
        yield test_client


class TestHealth:
    """Tests for the liveness endpoint."""

    def test_health(self, client):
        """Test health returns ok."""
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestIncomingSms:
    """Tests for POST /quiz/sms/incoming."""

    def test_start_keyword(self, client, gateway):
        """Test a BTD webhook triggers the billed start flow."""
        response = client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "BTD"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert gateway.kinds == [
            ActionKind.NOTIFY, ActionKind.SUBSCRIBE, ActionKind.CHARGE, ActionKind.NOTIFY,
        ]

    def test_answer(self, client, gateway):
        """Test an answer after a start gets a reply."""
        client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "BTW"})

        response = client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "B"})

        assert response.status_code == 200
        assert gateway.messages_to(SUBSCRIBER)[-1].startswith("Correct!")

    def test_no_session(self, client, gateway):
        """Test an answer without a quiz is answered with the error text."""
        response = client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "A"})

        assert response.status_code == 200
        assert gateway.messages_to(SUBSCRIBER) == ["No active quiz session. Send START to begin."]

    @pytest.mark.parametrize("body", [
        {"message": "BTD"},
        {"from": SUBSCRIBER},
        {"from": "", "message": "BTD"},
        {"from": SUBSCRIBER, "message": ""},
        {},
    ])
    def test_missing_fields(self, client, gateway, body):
        """Test missing sender or message is a 400 with no side effects."""
        response = client.post("/quiz/sms/incoming", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing from or message"}
        assert gateway.calls == []

    def test_malformed_body(self, client, gateway):
        """Test a non-JSON body is a 400, not 422."""
        response = client.post(
            "/quiz/sms/incoming",
            content="not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert gateway.calls == []

    def test_gateway_failure_still_acknowledged(self, client, gateway):
        """Test a failed delivery is logged and the webhook still returns ok."""
        gateway.default_response = failed_response(503)

        response = client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "BTD"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        # Welcome retried twice, nothing after it
        assert gateway.kinds == [ActionKind.NOTIFY, ActionKind.NOTIFY]

    def test_numeric_sender(self, client, gateway):
        """Test a sender posted as a JSON number is accepted as the MSISDN."""
        response = client.post("/quiz/sms/incoming", json={"from": 2547000000, "message": "BTD"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert gateway.kinds == [
            ActionKind.NOTIFY, ActionKind.SUBSCRIBE, ActionKind.CHARGE, ActionKind.NOTIFY,
        ]
        assert all(c.subscriber == "2547000000" for c in gateway.calls)

    def test_unexpected_error_still_acknowledged(self, client, gateway):
        """Test an error outside the gateway and quiz hierarchies is logged, not a 500."""
        gateway.script = [RuntimeError("boom")]

        response = client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "BTD"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        assert gateway.kinds == [ActionKind.NOTIFY]

    def test_store_failure_still_acknowledged(self, gateway):
        """Test a session store outage during dispatch still returns ok."""
        app = create_app(make_dispatcher(gateway, store=UnavailableSessionStore()))

        with TestClient(app) as client:
            response = client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "BTW"})

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
        # Welcome went out, the quiz could not be stored, no reply
        assert gateway.kinds == [ActionKind.NOTIFY]


class TestStartEndpoint:
    """Tests for POST /quiz/start."""

    def test_start(self, client, gateway):
        """Test direct start returns the first question without gateway calls."""
        response = client.post("/quiz/start", json={"phoneNumber": SUBSCRIBER})

        assert response.status_code == 200
        first = response.json()["firstQuestion"]
        assert first["id"] == "1"
        assert first["text"] == "What is the capital of Kenya?"
        assert len(first["options"]) == 4
        assert gateway.calls == []

    def test_start_then_answer(self, client, gateway):
        """Test a quiz started directly accepts answers over the webhook."""
        client.post("/quiz/start", json={"phoneNumber": SUBSCRIBER})

        client.post("/quiz/sms/incoming", json={"from": SUBSCRIBER, "message": "b"})

        assert gateway.messages_to(SUBSCRIBER)[0].startswith("Correct!")

    def test_missing_phone(self, client):
        """Test missing phoneNumber is a 400."""
        response = client.post("/quiz/start", json={})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing phoneNumber"}

    def test_insufficient_questions(self, gateway):
        """Test a short bank is a 503."""
        app = create_app(make_dispatcher(gateway, questions=SAMPLE_QUESTIONS[:3]))

        with TestClient(app) as client:
            response = client.post("/quiz/start", json={"phoneNumber": SUBSCRIBER})

        assert response.status_code == 503

    def test_store_unavailable(self, gateway):
        """Test a session store failure is a 503, not a 500."""
        app = create_app(make_dispatcher(gateway, store=UnavailableSessionStore()))

        with TestClient(app) as client:
            response = client.post("/quiz/start", json={"phoneNumber": SUBSCRIBER})

        assert response.status_code == 503
        assert response.json() == {"detail": "Session store unavailable"}

    def test_numeric_phone(self, client):
        """Test a phoneNumber posted as a JSON number starts a quiz."""
        response = client.post("/quiz/start", json={"phoneNumber": 2547000000})

        assert response.status_code == 200
        assert response.json()["firstQuestion"]["id"] == "1"


class TestLeaderboard:
    """Tests for GET /quiz/leaderboard."""

    def test_empty(self, client):
        """Test no completed quizzes gives an empty board."""
        response = client.get("/quiz/leaderboard")

        assert response.status_code == 200
        assert response.json() == {"leaderboard": []}

    def test_completed_quizzes_ranked(self, client):
        """Test totals from quizzes finished over the webhook, highest first."""
        answers = ["B", "C", "A", "C", "D", "B", "A", "B", "D", "B"]
        for sender, wrong in [("1", 0), ("2", 3)]:
            client.post("/quiz/sms/incoming", json={"from": sender, "message": "BTW"})
            for i, answer in enumerate(answers):
                text = "X" if i < wrong else answer
                client.post("/quiz/sms/incoming", json={"from": sender, "message": text})

        board = client.get("/quiz/leaderboard", params={"limit": 5}).json()["leaderboard"]

        assert [(e["subscriber"], e["total"]) for e in board] == [("1", 10), ("2", 7)]
        assert board[0]["quizzes_completed"] == 1

    def test_limit(self, client):
        """Test the limit query parameter caps the board."""
        for sender in ["1", "2"]:
            client.post("/quiz/sms/incoming", json={"from": sender, "message": "BTW"})
            for _ in range(10):
                client.post("/quiz/sms/incoming", json={"from": sender, "message": "A"})

        board = client.get("/quiz/leaderboard", params={"limit": 1}).json()["leaderboard"]

        assert len(board) == 1


class TestLifespan:
    """Tests for app startup and shutdown."""

    def test_shutdown_closes_gateway(self, gateway):
        """Test the transport is closed when the app stops."""
        app = create_app(make_dispatcher(gateway))

        with TestClient(app):
            assert gateway.closed is False

        assert gateway.closed is True

    def test_build_dispatcher_defaults(self):
        """Test default wiring uses PISI, the sample bank and the configured count."""
        cfg = Config.fast_mode()
        cfg.quiz.question_bank_path = None
        cfg.quiz.question_count = 5
        cfg.gateway.transport = "pisi"

        dispatcher = build_dispatcher(cfg)

        assert isinstance(dispatcher.executor.transport, PisiGateway)
        assert dispatcher.engine.question_count == 5
        assert dispatcher.executor.retry.max_attempts == 3
        assert isinstance(dispatcher.engine.store, InMemorySessionStore)

    def test_build_dispatcher_mock_transport(self):
        """Test the configured transport name selects the mock gateway."""
        cfg = Config.fast_mode()
        cfg.gateway.transport = "mock"

        dispatcher = build_dispatcher(cfg)

        assert isinstance(dispatcher.executor.transport, MockGateway)

    def test_build_dispatcher_from_bank_file(self, tmp_path):
        """Test a configured question bank file is loaded."""
        path = tmp_path / "bank.json"
        path.write_text(json.dumps([
            {"id": i, "question": f"Q{i}?", "optionA": "a", "optionB": "b",
             "optionC": "c", "optionD": "d", "answer": "A"}
            for i in range(1, 4)
        ]))
        cfg = Config.fast_mode()
        cfg.quiz.question_bank_path = str(path)

        dispatcher = build_dispatcher(cfg, transport=MockGateway())

        assert len(dispatcher.engine.provider.questions) == 3
        assert isinstance(dispatcher.executor.transport, MockGateway)
