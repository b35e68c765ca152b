"""
Tests for the quiz progression engine.
"""

import asyncio

import pytest

from brain_teaser.quiz import (
    InMemoryScoreStore,
    InMemorySessionStore,
    InsufficientQuestions,
    NoActiveSession,
    ProgressionEngine,
    QuestionBankProvider,
)
from brain_teaser.quiz.bank import SAMPLE_QUESTIONS

# Correct letters of the first ten sample questions, in order
ANSWERS = ["B", "C", "A", "C", "D", "B", "A", "B", "D", "B"]


class SlowSessionStore(InMemorySessionStore):
    """In-memory store that yields to the event loop on every read and write."""

    async def get(self, subscriber):
        await asyncio.sleep(0.005)
        return await super().get(subscriber)

    async def set(self, session):
        await asyncio.sleep(0.005)
        await super().set(session)


def make_engine(store=None, questions=SAMPLE_QUESTIONS, count=10):
    return ProgressionEngine(
        store=store or InMemorySessionStore(),
        provider=QuestionBankProvider(questions, shuffle=False),
        scores=InMemoryScoreStore(),
        question_count=count,
    )


class TestStart:
    """Tests for starting quizzes."""

    @pytest.mark.asyncio
    async def test_fresh_session(self):
        """Test a new quiz starts at zero with N distinct questions."""
        engine = make_engine()

        first = await engine.start("2547000000")
        session = await engine.get_session("2547000000")

        assert first == session.questions[0]
        assert session.total == 10
        assert len({q.id for q in session.questions}) == 10
        assert session.current_index == 0
        assert session.current_score == 0
        assert session.aggregate_score == 0
        assert session.completed is False

    @pytest.mark.asyncio
    async def test_restart_discards_progress(self):
        """Test start replaces a quiz already in progress."""
        engine = make_engine()
        await engine.start("1")
        await engine.submit_answer("1", ANSWERS[0])
        await engine.submit_answer("1", ANSWERS[1])

        await engine.start("1")
        session = await engine.get_session("1")

        assert session.current_index == 0
        assert session.current_score == 0

    @pytest.mark.asyncio
    async def test_insufficient_questions(self):
        """Test a short bank refuses to start and leaves no session."""
        engine = make_engine(questions=SAMPLE_QUESTIONS[:4])

        with pytest.raises(InsufficientQuestions) as exc_info:
            await engine.start("1")

        assert exc_info.value.requested == 10
        assert exc_info.value.received == 4
        assert await engine.get_session("1") is None

    @pytest.mark.asyncio
    async def test_insufficient_keeps_old_session(self):
        """Test a failed restart leaves the running quiz untouched."""
        provider = QuestionBankProvider(SAMPLE_QUESTIONS, shuffle=False)
        engine = ProgressionEngine(InMemorySessionStore(), provider, question_count=10)
        await engine.start("1")
        await engine.submit_answer("1", ANSWERS[0])

        provider.questions = provider.questions[:3]
        with pytest.raises(InsufficientQuestions):
            await engine.start("1")

        assert (await engine.get_session("1")).current_index == 1


class TestSubmitAnswer:
    """Tests for answering."""

    @pytest.mark.asyncio
    async def test_case_and_whitespace_insensitive(self):
        """Test ' b ' matches a correct answer of B."""
        engine = make_engine()
        await engine.start("1")

        result = await engine.submit_answer("1", " b ")

        assert result.correct is True
        assert result.score == 1
        assert result.done is False
        assert result.next_question.id == "2"

    @pytest.mark.asyncio
    async def test_garbage_counts_as_wrong(self):
        """Test non-letter input scores nothing but still advances."""
        engine = make_engine()
        await engine.start("1")

        result = await engine.submit_answer("1", "hello")

        assert result.correct is False
        assert result.score == 0
        assert (await engine.get_session("1")).current_index == 1

    @pytest.mark.asyncio
    async def test_no_session(self):
        """Test answering without a quiz raises NoActiveSession."""
        engine = make_engine()

        with pytest.raises(NoActiveSession) as exc_info:
            await engine.submit_answer("1", "A")

        assert str(exc_info.value) == "No active quiz session. Send START to begin."

    @pytest.mark.asyncio
    async def test_full_quiz_perfect(self):
        """Test N correct answers complete the quiz and remove the session."""
        engine = make_engine()
        await engine.start("1")

        results = [await engine.submit_answer("1", a) for a in ANSWERS]

        assert all(r.correct for r in results)
        assert [r.done for r in results] == [False] * 9 + [True]
        final = results[-1]
        assert final.score == 10
        assert final.aggregate_score == 10
        assert final.total == 10
        assert final.next_question is None
        assert await engine.get_session("1") is None
        assert await engine.scores.get_total("1") == 10

    @pytest.mark.asyncio
    async def test_answer_after_completion(self):
        """Test the (N+1)th answer finds no session."""
        engine = make_engine()
        await engine.start("1")
        for a in ANSWERS:
            await engine.submit_answer("1", a)

        with pytest.raises(NoActiveSession):
            await engine.submit_answer("1", "A")

    @pytest.mark.asyncio
    async def test_score_monotonic(self):
        """Test score never decreases and index advances by one each answer."""
        engine = make_engine()
        await engine.start("1")
        last = 0

        for i, answer in enumerate(["B", "A", "A", "A", "D", "A", "A", "A", "A"]):
            result = await engine.submit_answer("1", answer)
            assert result.score >= last
            last = result.score
            assert (await engine.get_session("1")).current_index == i + 1

        assert last == 4

    @pytest.mark.asyncio
    async def test_aggregate_applied_once(self):
        """Test completion records the score exactly once."""
        engine = make_engine()
        await engine.start("1")
        for a in ["A"] * 9 + [ANSWERS[9]]:
            result = await engine.submit_answer("1", a)

        assert result.score == 3  # Q3, Q7 and Q10
        assert result.aggregate_score == 3
        assert await engine.scores.get_total("1") == 3

    @pytest.mark.asyncio
    async def test_aggregate_resets_on_new_quiz(self):
        """Test the per-session aggregate starts over while the score store keeps history."""
        engine = make_engine()
        for _ in range(2):
            await engine.start("1")
            for a in ANSWERS:
                result = await engine.submit_answer("1", a)

        assert result.aggregate_score == 10
        assert await engine.scores.get_total("1") == 20

    @pytest.mark.asyncio
    async def test_subscribers_isolated(self):
        """Test one subscriber's answers never touch another's session."""
        engine = make_engine()
        await engine.start("1")
        await engine.start("2")

        await engine.submit_answer("1", ANSWERS[0])

        assert (await engine.get_session("1")).current_index == 1
        assert (await engine.get_session("2")).current_index == 0


class TestConcurrency:
    """Tests for per-subscriber serialization."""

    @pytest.mark.asyncio
    async def test_concurrent_answers_both_applied(self):
        """Test two simultaneous answers advance the index by exactly two."""
        engine = make_engine(store=SlowSessionStore())
        await engine.start("1")

        results = await asyncio.gather(
            engine.submit_answer("1", "B"),
            engine.submit_answer("1", "B"),
        )

        session = await engine.get_session("1")
        assert session.current_index == 2
        # Q1 is B, Q2 is C: exactly one of the two answers is correct
        assert sorted(r.correct for r in results) == [False, True]
        assert session.current_score == 1

    @pytest.mark.asyncio
    async def test_concurrent_final_answers(self):
        """Test racing answers at the end complete once and then see no session."""
        engine = make_engine(store=SlowSessionStore())
        await engine.start("1")
        for a in ANSWERS[:9]:
            await engine.submit_answer("1", a)

        results = await asyncio.gather(
            engine.submit_answer("1", ANSWERS[9]),
            engine.submit_answer("1", ANSWERS[9]),
            return_exceptions=True,
        )

        done = [r for r in results if not isinstance(r, Exception)]
        errors = [r for r in results if isinstance(r, NoActiveSession)]
        assert len(done) == 1 and done[0].done is True
        assert len(errors) == 1
        assert await engine.scores.get_total("1") == 10

    @pytest.mark.asyncio
    async def test_start_and_answer_race(self):
        """Test a start racing an answer leaves a consistent session."""
        engine = make_engine(store=SlowSessionStore())
        await engine.start("1")
        for a in ANSWERS[:5]:
            await engine.submit_answer("1", a)

        await asyncio.gather(engine.start("1"), engine.submit_answer("1", "B"))

        session = await engine.get_session("1")
        # Either the answer landed before the restart (index 0) or after it (index 1)
        assert session.current_index in (0, 1)
        assert session.current_score == session.current_index
