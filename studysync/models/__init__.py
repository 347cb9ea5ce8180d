# Import all models so SQLAlchemy sees them
from studysync.models.user import User  # noqa
from studysync.models.flashcard import FlashcardDeck, Flashcard  # noqa
from studysync.models.quiz import Quiz, QuizQuestion  # noqa
from studysync.models.chat import ChatThread, ChatMessage  # noqa
from studysync.models.embedding import Embedding  # noqa
