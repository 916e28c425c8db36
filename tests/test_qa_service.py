"""
Tests for question, answer and comment persistence rules.
"""

import pytest

from askless.db_models import DBAnswer, DBComment, DBProfile, DBQuestion, DBQuestionTag, DBVote
from askless.exceptions import NotFoundError, PermissionDeniedError
from askless.qa_service import AnswerService, CommentService, QuestionService
from askless.tag_service import TagsService


@pytest.fixture
def people(db_session):
    db_session.add_all([
        DBProfile(id="owner", username="owner"),
        DBProfile(id="stranger", username="stranger"),
    ])
    db_session.commit()


@pytest.fixture
def question(db_session, people):
    tags = TagsService(db_session).get_or_create_tags(["css", "html"])
    return QuestionService(db_session).create_question(
        "owner", "  How do I center a div?  ", "With flexbox?", [t.id for t in tags]
    )


class TestQuestions:

    def test_create_strips_and_links_tags(self, db_session, question):
        assert question.title == "How do I center a div?"
        assert question.status == "open"
        assert sorted(t.name for t in question.tags) == ["css", "html"]

    def test_get_missing_raises(self, db_session):
        with pytest.raises(NotFoundError):
            QuestionService(db_session).get_question("nope")

    def test_list_respects_limit(self, db_session, people):
        service = QuestionService(db_session)
        for i in range(3):
            service.create_question("owner", f"q{i}", "body")

        titles = [q.title for q in service.list_questions(limit=2)]

        assert len(titles) == 2

    def test_delete_requires_owner(self, db_session, question):
        with pytest.raises(PermissionDeniedError):
            QuestionService(db_session).delete_question(question.id, "stranger")
        with pytest.raises(PermissionDeniedError):
            QuestionService(db_session).delete_question(question.id, None)

    def test_delete_cascades(self, db_session, question):
        answer = AnswerService(db_session).create_answer(question.id, "stranger", "Use flexbox.")
        CommentService(db_session).create_comment("owner", "thanks", answer_id=answer.id)
        db_session.add(DBVote(user_id="stranger", question_id=question.id, vote_type="upvote"))
        db_session.commit()

        QuestionService(db_session).delete_question(question.id, "owner")

        for model in (DBQuestion, DBAnswer, DBComment, DBVote, DBQuestionTag):
            assert db_session.query(model).count() == 0

    def test_top_searched_orders_by_hits(self, db_session, people):
        service = QuestionService(db_session)
        cold = service.create_question("owner", "cold", "body")
        warm = service.create_question("owner", "warm", "body")
        hot = service.create_question("owner", "hot", "body")
        warm.search_count = 1
        hot.search_count = 5
        db_session.commit()

        assert [q.id for q in service.top_searched()] == [hot.id, warm.id]
        assert cold.id not in [q.id for q in service.top_searched()]


class TestAnswers:

    def test_answer_missing_question(self, db_session, people):
        with pytest.raises(NotFoundError):
            AnswerService(db_session).create_answer("nope", "owner", "text")

    def test_accept_only_by_question_owner(self, db_session, question):
        service = AnswerService(db_session)
        answer = service.create_answer(question.id, "stranger", "Use flexbox.")

        with pytest.raises(PermissionDeniedError):
            service.accept_answer(answer.id, "stranger")

        accepted = service.accept_answer(answer.id, "owner")
        assert accepted.is_accepted is True
        assert db_session.get(DBQuestion, question.id).status == "answered"

    def test_accepting_another_answer_unaccepts_the_first(self, db_session, question):
        service = AnswerService(db_session)
        first = service.create_answer(question.id, "stranger", "Use flexbox.")
        second = service.create_answer(question.id, "stranger", "Use grid.")

        service.accept_answer(first.id, "owner")
        service.accept_answer(second.id, "owner")

        db_session.refresh(first)
        assert first.is_accepted is False
        assert second.is_accepted is True


class TestComments:

    def test_needs_exactly_one_target(self, db_session, question):
        service = CommentService(db_session)
        with pytest.raises(ValueError):
            service.create_comment("owner", "hm")
        with pytest.raises(ValueError):
            service.create_comment("owner", "hm", answer_id="a", question_id=question.id)

    def test_threaded_reply(self, db_session, question):
        service = CommentService(db_session)
        parent = service.create_comment("owner", "Which browser?", question_id=question.id)
        child = service.create_comment("stranger", "Firefox", question_id=question.id, parent_id=parent.id)

        assert child.parent_id == parent.id
        assert {c.id for c in service.get_comments_for_question(question.id)} == {parent.id, child.id}

    def test_parent_must_share_target(self, db_session, question):
        answer = AnswerService(db_session).create_answer(question.id, "stranger", "Use grid.")
        service = CommentService(db_session)
        parent = service.create_comment("owner", "on the question", question_id=question.id)

        with pytest.raises(ValueError):
            service.create_comment("owner", "on the answer", answer_id=answer.id, parent_id=parent.id)

    def test_delete_owner_only_and_replies_cascade(self, db_session, question):
        service = CommentService(db_session)
        parent = service.create_comment("owner", "Which browser?", question_id=question.id)
        service.create_comment("stranger", "Firefox", question_id=question.id, parent_id=parent.id)

        with pytest.raises(PermissionDeniedError):
            service.delete_comment(parent.id, "stranger")

        service.delete_comment(parent.id, "owner")
        assert db_session.query(DBComment).count() == 0
