"""
Unit tests for answer extraction, the handler registry and AnswerNormalizer.
"""

import pytest

from quiz_engine.answers import HANDLERS, AnswerNormalizer, get_handler
from quiz_engine.answers.base import (
    BlanksAnswer,
    CodeAnswer,
    FlashcardAnswer,
    McqAnswer,
    OpenEndedAnswer,
    OrderingAnswer,
    answer_to_record,
    coerce_question,
    extract_raw_answer,
    split_steps,
)
from quiz_engine.answers.mcq import resolve_option_text
from quiz_engine.grading import SimilarityGrader
from quiz_engine.models import Question, QuestionType
from quiz_engine.results import build_result


@pytest.fixture
def normalizer():
    """Normalizer with default thresholds."""
    return AnswerNormalizer(SimilarityGrader())


class TestHandlerRegistry:
    """Tests for the per-type handler registry."""

    def test_every_type_registered(self):
        assert set(HANDLERS) == set(QuestionType)

    def test_lookup_by_string(self):
        assert get_handler("MCQ") is HANDLERS[QuestionType.MCQ]
        assert get_handler("unknown") is None


class TestExtractRawAnswer:
    """Tests for the legacy answer adapter."""

    def test_mcq_field_priority(self):
        raw = {"answer": "x", "userAnswer": "y", "selectedOption": "z", "selectedOptionId": "a"}
        assert extract_raw_answer(QuestionType.MCQ, raw) == McqAnswer(selected_option_id="a")

    def test_mcq_falls_through_to_lower_priority(self):
        raw = {"selectedOptionId": None, "userAnswer": "b", "isCorrect": True}
        assert extract_raw_answer(QuestionType.MCQ, raw) == McqAnswer(selected_option_id="b", is_correct=True)

    def test_non_bool_flag_ignored(self):
        answer = extract_raw_answer(QuestionType.MCQ, {"answer": "a", "isCorrect": "yes"})
        assert answer.is_correct is None

    def test_blanks_filled_map(self):
        raw = {"filledBlanks": {"b1": "object", "b2": "class"}}
        assert extract_raw_answer(QuestionType.BLANKS, raw, "b1") == BlanksAnswer(text="object")

    def test_bare_string(self):
        assert extract_raw_answer(QuestionType.OPENENDED, "free text") == OpenEndedAnswer(text="free text")

    def test_ordering_list(self):
        raw = {"userOrder": [2, 0, 1]}
        assert extract_raw_answer(QuestionType.ORDERING, raw) == OrderingAnswer(order=("2", "0", "1"))

    @pytest.mark.parametrize("raw", [None, {}, {"answer": "   "}, {"answer": {"nested": 1}}, []])
    def test_unusable_is_none(self, raw):
        assert extract_raw_answer(QuestionType.MCQ, raw) is None

    def test_typed_passthrough(self):
        answer = CodeAnswer(code="print(1)", is_correct=True)
        assert extract_raw_answer(QuestionType.CODE, answer) is answer

    def test_record_reads_back(self):
        for question_type, answer in [
            (QuestionType.MCQ, McqAnswer("a", is_correct=False)),
            (QuestionType.CODE, CodeAnswer("x = 1")),
            (QuestionType.BLANKS, BlanksAnswer("object", is_correct=True)),
            (QuestionType.FLASHCARD, FlashcardAnswer("still_learning")),
            (QuestionType.ORDERING, OrderingAnswer(("a", "b"))),
        ]:
            assert extract_raw_answer(question_type, answer_to_record(answer)) == answer


class TestHelpers:
    """Tests for step splitting, option resolution and question coercion."""

    def test_split_steps(self):
        assert split_steps("a -> b → c") == ["a", "b", "c"]
        assert split_steps("one\ntwo\n\nthree") == ["one", "two", "three"]
        assert split_steps("") == []

    def test_resolve_option_text(self, mcq_questions):
        assert resolve_option_text(mcq_questions[1], "a") == "ARP"
        assert resolve_option_text(mcq_questions[0], "Network") == "Network"
        assert resolve_option_text(mcq_questions[0], "Session") is None

    def test_coerce_legacy_question(self):
        question = coerce_question(
            {"questionId": 7, "question": "Pick one", "correctAnswer": "B", "options": ["A", "B"]},
            "mcq",
        )
        assert question.id == "7"
        assert question.type == QuestionType.MCQ
        assert question.reference_answer == "B"

    def test_coerce_ordering_steps(self):
        question = coerce_question({"id": "o", "type": "ordering", "steps": [{"id": "s1"}, {"id": "s2"}]})
        assert question.canonical_order == ["s1", "s2"]

    def test_coerce_rejects_bad_type(self):
        assert coerce_question({"id": "x", "type": "essay"}) is None
        assert coerce_question("not a dict") is None


class TestMcq:
    """Tests for multiple choice normalization."""

    def test_supplied_flags_score(self, normalizer, mcq_questions):
        """Three MCQ answers flagged correct, incorrect, correct score 2/3 (67%)."""
        answers = {
            "q1": {"selectedOptionId": "Network", "isCorrect": True},
            "q2": {"selectedOptionId": "b", "isCorrect": False},
            "q3": {"selectedOptionId": "110", "isCorrect": True},
        }
        graded = normalizer.normalize_all(mcq_questions, answers)
        result = build_result("quiz-1", "osi", QuestionType.MCQ, graded)

        assert [g.is_correct for g in graded] == [True, False, True]
        assert result.score == 2
        assert result.max_score == 3
        assert result.percentage == 67

    def test_computed_by_id(self, normalizer, mcq_questions):
        graded = normalizer.normalize(mcq_questions[1], {"selectedOption": "a"}, 4)

        assert graded.is_correct is True
        assert graded.user_answer == "ARP"
        assert graded.correct_answer == "ARP"
        assert graded.time_spent_seconds == 4

    def test_wrong_option(self, normalizer, mcq_questions):
        graded = normalizer.normalize(mcq_questions[0], {"answer": "Transport"})
        assert graded.is_correct is False
        assert graded.user_answer == "Transport"


class TestBlanks:
    """Tests for fill-in-the-blank normalization."""

    def test_transposition_passes_gate(self, normalizer, blanks_question):
        graded = normalizer.normalize(blanks_question, {"userAnswer": "objetc"})

        assert graded.is_correct is True
        assert graded.similarity == 67

    def test_exact_match_case_insensitive(self, normalizer, blanks_question):
        graded = normalizer.normalize(blanks_question, {"value": "OBJECT"})
        assert graded.is_correct is True
        assert graded.similarity == 100

    def test_far_answer_fails(self, normalizer, blanks_question):
        graded = normalizer.normalize(blanks_question, {"text": "function"})
        assert graded.is_correct is False
        assert graded.similarity is not None

    def test_supplied_flag_wins(self, normalizer, blanks_question):
        graded = normalizer.normalize(blanks_question, {"userAnswer": "objetc", "isCorrect": False})
        assert graded.is_correct is False


class TestOtherTypes:
    """Tests for code, open-ended, flashcard and ordering normalization."""

    def test_code_needs_flag(self, normalizer):
        question = Question(id="c1", type=QuestionType.CODE, reference_answer="def f(): pass")

        assert normalizer.normalize(question, {"code": "def f(): pass"}).is_correct is False
        graded = normalizer.normalize(question, {"code": "def f(): return 1", "isCorrect": True})
        assert graded.is_correct is True
        assert graded.user_answer == "def f(): return 1"

    def test_openended_threshold(self, normalizer):
        question = Question(
            id="e1", type=QuestionType.OPENENDED, reference_answer="routers forward packets between networks"
        )

        close = normalizer.normalize(question, "routers forward packets between network")
        far = normalizer.normalize(question, "switches")

        assert close.is_correct is True and close.similarity > 70
        assert far.is_correct is False

    @pytest.mark.parametrize(
        "response,expected",
        [("correct", True), ("incorrect", False), ("Still Learning", False)],
    )
    def test_flashcard_self_report(self, normalizer, response, expected):
        question = Question(id="f1", type=QuestionType.FLASHCARD, reference_answer="Layer 3")
        graded = normalizer.normalize(question, {"answer": response})

        assert graded.is_correct is expected
        assert graded.similarity is None

    def test_flashcard_free_text(self, normalizer):
        question = Question(id="f1", type=QuestionType.FLASHCARD, reference_answer="Layer 3")
        graded = normalizer.normalize(question, {"response": "layer 3"})

        assert graded.is_correct is True
        assert graded.similarity == 100

    def test_ordering_exact_match_only(self, normalizer, ordering_question):
        right = normalizer.normalize(ordering_question, {"order": ["syn", "syn-ack", "ack", "data"]})
        wrong = normalizer.normalize(ordering_question, {"order": ["syn", "ack", "syn-ack", "data"]})

        assert right.is_correct is True
        assert right.user_answer == "syn -> syn-ack -> ack -> data"
        assert wrong.is_correct is False

    def test_ordering_reference_fallback(self, normalizer):
        question = Question(id="o2", type=QuestionType.ORDERING, reference_answer="a -> b -> c")
        assert normalizer.normalize(question, ["a", "b", "c"]).is_correct is True

    def test_ordering_index_permutation(self, normalizer, ordering_question):
        """Positions into the step list are mapped to step ids before comparing."""
        right = normalizer.normalize(ordering_question, [0, 1, 2, 3])
        wrong = normalizer.normalize(ordering_question, {"order": ["0", "2", "1", "3"]})

        assert right.is_correct is True
        assert right.user_answer == "syn -> syn-ack -> ack -> data"
        assert wrong.is_correct is False
        assert wrong.user_answer == "syn -> ack -> syn-ack -> data"

    def test_ordering_indexes_follow_authored_steps(self, normalizer):
        question = Question(
            id="o3",
            type=QuestionType.ORDERING,
            options=["c", "a", "b"],
            canonical_order=["a", "b", "c"],
        )
        assert normalizer.normalize(question, [1, 2, 0]).is_correct is True
        assert normalizer.normalize(question, [0, 1, 2]).is_correct is False

    def test_numeric_step_ids_not_remapped(self, normalizer):
        question = Question(id="o4", type=QuestionType.ORDERING, canonical_order=["1", "2", "3"])

        assert normalizer.normalize(question, [1, 2, 3]).is_correct is True
        assert normalizer.normalize(question, [0, 1, 2]).is_correct is False


class TestUnanswered:
    """Tests for the never-raise contract."""

    def test_missing_answer(self, normalizer, mcq_questions):
        graded = normalizer.normalize(mcq_questions[0], None, 3)

        assert graded.user_answer == ""
        assert graded.is_correct is False
        assert graded.correct_answer == "Network"
        assert graded.time_spent_seconds == 3

    def test_bad_elapsed(self, normalizer, mcq_questions):
        graded = normalizer.normalize(mcq_questions[0], {"answer": "Network"}, "soon")
        assert graded.time_spent_seconds == 0

    def test_handler_exception_degrades(self, normalizer, blanks_question, monkeypatch):
        def explode(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(HANDLERS[QuestionType.BLANKS], "grade", explode)
        graded = normalizer.normalize(blanks_question, {"userAnswer": "object"})

        assert graded.is_correct is False
        assert graded.user_answer == ""

    def test_one_bad_record_does_not_block_others(self, normalizer, mcq_questions):
        answers = {"q1": {"answer": ["not", "text"]}, "q3": "110"}
        graded = normalizer.normalize_all(mcq_questions, answers)

        assert len(graded) == 3
        assert [g.is_correct for g in graded] == [False, False, True]
