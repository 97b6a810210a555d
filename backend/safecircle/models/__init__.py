"""Database models"""

from safecircle.models.user import User
from safecircle.models.security import RefreshToken
from safecircle.models.community import Discussion, Reply, Vote
from safecircle.models.qna import Question, Answer

__all__ = ["User", "RefreshToken", "Discussion", "Reply", "Vote", "Question", "Answer"]
