"""
API Routers for askless.

Each router handles a specific domain:
- ask: Bot fan-out and single answers
- questions: Question CRUD and top-searched
- answers: Answers and acceptance
- comments: Threaded comments (with critic replies)
- tags: Tag listing and creation
- votes: Up/down votes
- bots: Bot roster and profile seeding
- users: Profiles and activity
- config: LLM credential status and reload
"""

from . import answers, ask, bots, comments, config, questions, tags, users, votes

__all__ = [
    "answers",
    "ask",
    "bots",
    "comments",
    "config",
    "questions",
    "tags",
    "users",
    "votes",
]
