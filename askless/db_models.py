"""
SQLAlchemy database models.

Maps the Q&A domain (profiles, questions, tags, answers, comments, votes)
to relational tables. Separate from Pydantic models (models.py) which
handle API validation.
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer,
    String, Text, text,
)
from sqlalchemy.orm import backref, declarative_base, relationship

Base = declarative_base()


def _uuid() -> str:
    return str(uuid.uuid4())


class DBProfile(Base):
    """Identity record for a human user or a bot personality."""
    __tablename__ = "profiles"

    id = Column(String(36), primary_key=True)
    username = Column(String(100), nullable=False, index=True)
    is_ai = Column(Boolean, nullable=False, default=False)
    avatar_url = Column(String(1024), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    questions = relationship("DBQuestion", back_populates="author")
    answers = relationship("DBAnswer", back_populates="author")

    def __repr__(self):
        return f"<DBProfile(id='{self.id}', username='{self.username}', is_ai={self.is_ai})>"


class DBQuestion(Base):
    """Question asked by a user."""
    __tablename__ = "questions"

    id = Column(String(36), primary_key=True, default=_uuid)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    title = Column(String(300), nullable=False)
    content = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="open")
    # Incremented whenever a new question is redirected here as a duplicate
    search_count = Column(Integer, nullable=False, default=0, server_default="0")

    author = relationship("DBProfile", back_populates="questions")
    answers = relationship("DBAnswer", back_populates="question", cascade="all, delete-orphan")
    question_tags = relationship("DBQuestionTag", back_populates="question", cascade="all, delete-orphan")
    comments = relationship("DBComment", back_populates="question", cascade="all, delete-orphan")
    votes = relationship("DBVote", back_populates="question", cascade="all, delete-orphan")

    @property
    def profile(self):
        return self.author

    @property
    def tags(self):
        return [qt.tag for qt in self.question_tags]

    __table_args__ = (
        Index('idx_question_search_count', 'search_count'),
    )

    def __repr__(self):
        return f"<DBQuestion(id='{self.id}', title='{self.title[:30]}')>"


class DBTag(Base):
    """Globally unique tag (stored lower-case)."""
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(64), unique=True, nullable=False, index=True)

    question_tags = relationship("DBQuestionTag", back_populates="tag", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<DBTag(id={self.id}, name='{self.name}')>"


class DBQuestionTag(Base):
    """Many-to-many join between questions and tags."""
    __tablename__ = "question_tags"

    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), primary_key=True)
    tag_id = Column(Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True)

    question = relationship("DBQuestion", back_populates="question_tags")
    tag = relationship("DBTag", back_populates="question_tags")


class DBAnswer(Base):
    """Answer to a question, written by a bot or a human."""
    __tablename__ = "answers"

    id = Column(String(36), primary_key=True, default=_uuid)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    is_accepted = Column(Boolean, nullable=False, default=False)

    question = relationship("DBQuestion", back_populates="answers")
    author = relationship("DBProfile", back_populates="answers")
    comments = relationship("DBComment", back_populates="answer", cascade="all, delete-orphan")
    votes = relationship("DBVote", back_populates="answer", cascade="all, delete-orphan")

    @property
    def profile(self):
        return self.author

    def __repr__(self):
        return f"<DBAnswer(id='{self.id}', question='{self.question_id}', user='{self.user_id}')>"


class DBComment(Base):
    """
    Comment on exactly one of an answer or a question.

    Threaded through parent_id; deleting a comment deletes its replies.
    """
    __tablename__ = "comments"

    id = Column(String(36), primary_key=True, default=_uuid)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    answer_id = Column(String(36), ForeignKey("answers.id", ondelete="CASCADE"), nullable=True, index=True)
    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(String(36), ForeignKey("profiles.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    parent_id = Column(String(36), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    answer = relationship("DBAnswer", back_populates="comments")
    question = relationship("DBQuestion", back_populates="comments")
    author = relationship("DBProfile")
    replies = relationship(
        "DBComment",
        cascade="all, delete-orphan",
        backref=backref("parent", remote_side=[id]),
    )

    __table_args__ = (
        CheckConstraint(
            "(answer_id IS NOT NULL AND question_id IS NULL) OR "
            "(answer_id IS NULL AND question_id IS NOT NULL)",
            name="comments_target_check",
        ),
    )

    @property
    def profile(self):
        return self.author

    def __repr__(self):
        return f"<DBComment(id='{self.id}', answer='{self.answer_id}', question='{self.question_id}')>"


class DBVote(Base):
    """Up/down vote by a user on exactly one question or answer."""
    __tablename__ = "votes"

    id = Column(String(36), primary_key=True, default=_uuid)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    user_id = Column(String(36), ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    question_id = Column(String(36), ForeignKey("questions.id", ondelete="CASCADE"), nullable=True, index=True)
    answer_id = Column(String(36), ForeignKey("answers.id", ondelete="CASCADE"), nullable=True, index=True)
    vote_type = Column(String(10), nullable=False)

    question = relationship("DBQuestion", back_populates="votes")
    answer = relationship("DBAnswer", back_populates="votes")

    __table_args__ = (
        CheckConstraint("vote_type IN ('upvote', 'downvote')", name="votes_type_check"),
        CheckConstraint(
            "(question_id IS NOT NULL AND answer_id IS NULL) OR "
            "(question_id IS NULL AND answer_id IS NOT NULL)",
            name="votes_item_check",
        ),
        # One vote per user per target
        Index(
            'idx_votes_user_question_unique', 'user_id', 'question_id', unique=True,
            sqlite_where=text('question_id IS NOT NULL'),
            postgresql_where=text('question_id IS NOT NULL'),
        ),
        Index(
            'idx_votes_user_answer_unique', 'user_id', 'answer_id', unique=True,
            sqlite_where=text('answer_id IS NOT NULL'),
            postgresql_where=text('answer_id IS NOT NULL'),
        ),
    )

    def __repr__(self):
        return f"<DBVote(user='{self.user_id}', type='{self.vote_type}')>"
