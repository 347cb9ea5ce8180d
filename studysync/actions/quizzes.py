from flask import current_app
from studysync.extensions import db
from studysync.errors import NotFoundError, ValidationError
from studysync.models.quiz import Quiz, QuizQuestion
from studysync.models.embedding import Embedding
from studysync.actions import server_action, require_user, revalidate_path
from studysync.actions.flashcards import apply_search, apply_sort
from studysync.actions.gamification import apply_points, QUIZ_CREATED_POINTS, QUESTION_CREATED_POINTS
from studysync.services.embedding_service import generate_and_store_quiz_embeddings, delete_embeddings

QUIZZES_PATH = "/dashboard/quizzes"


def _owned_quiz(quiz_id, user, message="Quiz not found"):
    quiz = Quiz.query.filter_by(id=quiz_id, owner_id=user.id).first()
    if quiz is None:
        raise NotFoundError(message)
    return quiz


def _parse_id(value, label):
    """Integer id from a JSON value (number or numeric string); None when absent."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{label} has an invalid id")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{label} has an invalid id")


def _validate_question(data, index):
    """Return ``(question_id, column_values)`` for one question payload."""
    if not isinstance(data, dict):
        raise ValidationError(f"Question {index + 1} must be an object")
    text = data.get("question")
    if not isinstance(text, str) or not text.strip():
        raise ValidationError(f"Question {index + 1} needs a question text")
    question_id = _parse_id(data.get("id"), f"Question {index + 1}")
    correct = data.get("correct", 0)
    if not isinstance(correct, int) or isinstance(correct, bool) or not 0 <= correct < len(QuizQuestion.ANSWER_FIELDS):
        raise ValidationError(f"Question {index + 1} has an invalid correct answer")
    values = {field: data.get(field, "") or "" for field in QuizQuestion.ANSWER_FIELDS}
    values["question"] = text.strip()
    values["correct"] = correct
    try:
        values["position"] = int(data.get("position", index))
    except (TypeError, ValueError):
        raise ValidationError(f"Question {index + 1} has an invalid position")
    return question_id, values


@server_action("quizzes.get_quizzes")
def get_quizzes(search_query="", sort_by="updated_desc"):
    user = require_user()
    query = Quiz.query.filter_by(owner_id=user.id)
    query = apply_search(query, Quiz, search_query)
    query = apply_sort(query, Quiz, sort_by)
    return [q.to_dict() for q in query.all()]


@server_action("quizzes.delete_quiz")
def delete_quiz(quiz_id):
    user = require_user()
    quiz = _owned_quiz(quiz_id, user)
    db.session.delete(quiz)
    db.session.commit()
    current_app.logger.info(f"User {user.id} deleted quiz {quiz_id}")

    delete_embeddings(Embedding.SOURCE_QUIZ, quiz_id)
    revalidate_path(QUIZZES_PATH)


@server_action("quizzes.get_quiz")
def get_quiz(quiz_id):
    user = require_user()
    return _owned_quiz(quiz_id, user).to_dict()


@server_action("quizzes.get_questions")
def get_questions(quiz_id):
    user = require_user()
    quiz = _owned_quiz(quiz_id, user, message="Quiz not found or access denied")
    questions = QuizQuestion.query.filter_by(quiz_id=quiz.id).order_by(
        QuizQuestion.position.asc(), QuizQuestion.id.asc()
    ).all()
    return [q.to_dict() for q in questions]


@server_action("quizzes.save_quiz_with_questions")
def save_quiz_with_questions(quiz_data, questions):
    """
    Create or update a quiz together with its full question set.

    ``quiz_data`` carries ``title``, optional ``description`` and, for an
    update, the quiz ``id``. Existing questions missing from ``questions``
    are deleted, those with a known ``id`` are updated and the rest are
    inserted.

    Returns ``{"quiz_id": ...}``.
    """
    user = require_user()
    if not isinstance(quiz_data, dict):
        raise ValidationError("Quiz data must be an object")
    title = quiz_data.get("title")
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("Title is required")
    title = title.strip()
    if not isinstance(questions, list):
        raise ValidationError("Questions must be a list")
    quiz_id = _parse_id(quiz_data.get("id"), "Quiz")
    cleaned = [_validate_question(q, i) for i, q in enumerate(questions)]

    # Step 1: create or update the quiz
    if quiz_id is not None:
        quiz = _owned_quiz(quiz_id, user)
        quiz.title = title
        quiz.description = quiz_data.get("description") or None
    else:
        quiz = Quiz(owner_id=user.id, title=title, description=quiz_data.get("description") or None)
        db.session.add(quiz)
        db.session.flush()
        apply_points(user, QUIZ_CREATED_POINTS, commit=False)

    # Step 2: drop questions no longer present
    existing = {q.id: q for q in QuizQuestion.query.filter_by(quiz_id=quiz.id).all()}
    kept_ids = {qid for qid, _ in cleaned if qid}
    for qid, question in existing.items():
        if qid not in kept_ids:
            db.session.delete(question)

    # Step 3: update known questions, insert new ones
    for qid, values in cleaned:
        if qid and qid in existing:
            for field, value in values.items():
                setattr(existing[qid], field, value)
        else:
            db.session.add(QuizQuestion(quiz_id=quiz.id, **values))
            apply_points(user, QUESTION_CREATED_POINTS, commit=False)

    db.session.commit()
    current_app.logger.info(f"User {user.id} saved quiz {quiz.id} with {len(cleaned)} question(s)")

    try:
        generate_and_store_quiz_embeddings(quiz)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(f"Failed to store embeddings for quiz {quiz.id}")

    revalidate_path(QUIZZES_PATH)
    return {"quiz_id": quiz.id}
