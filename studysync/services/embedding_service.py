import zlib
import numpy as np
from flask import current_app
from studysync.extensions import db
from studysync.models.embedding import Embedding


def _bucket(token, dim):
    # crc32 is stable across processes, unlike hash()
    return zlib.crc32(token.encode("utf-8")) % dim


def _simple_text_to_vector(text, dim=384):
    """
    Bag-of-character-trigrams embedding for lightweight similarity search.
    Uses hashing into a fixed-size vector, L2-normalized.
    """
    vec = np.zeros(dim, dtype=np.float32)
    text = text.lower().strip()
    if not text:
        return vec

    for i in range(len(text) - 2):
        vec[_bucket(text[i:i+3], dim)] += 1.0

    # Words weigh more than trigrams
    for word in text.split():
        vec[_bucket(word, dim)] += 2.0

    norm = np.linalg.norm(vec)
    if norm > 0:
        vec = vec / norm

    return vec


def generate_embedding(text):
    """Generate an embedding vector for the given text."""
    return _simple_text_to_vector(text, dim=current_app.config.get("EMBEDDING_DIM", 384))


def _store(owner_id, source_type, source_id, content):
    vec = generate_embedding(content)
    emb = Embedding.query.filter_by(source_type=source_type, source_id=source_id).first()
    if emb is None:
        emb = Embedding(owner_id=owner_id, source_type=source_type, source_id=source_id)
        db.session.add(emb)
    emb.content = content
    emb.vector_blob = vec.astype(np.float32).tobytes()
    db.session.commit()
    return emb


def flashcard_deck_content(deck):
    lines = [deck.title]
    if deck.description:
        lines.append(deck.description)
    for card in deck.flashcards:
        lines.append(f"Q: {card.question}\nA: {card.answer}")
    return "\n".join(lines)


def quiz_content(quiz):
    lines = [quiz.title]
    if quiz.description:
        lines.append(quiz.description)
    for q in quiz.questions:
        answers = [getattr(q, field) for field in q.ANSWER_FIELDS]
        correct = answers[q.correct] if 0 <= q.correct < len(answers) else ""
        lines.append(f"Q: {q.question}\nA: {correct}")
    return "\n".join(lines)


def generate_and_store_flashcard_embeddings(deck):
    """Embed a deck (title, description and cards) and upsert its row."""
    return _store(deck.owner_id, Embedding.SOURCE_DECK, deck.id, flashcard_deck_content(deck))


def generate_and_store_quiz_embeddings(quiz):
    """Embed a quiz (title, description and questions with their correct answers)."""
    return _store(quiz.owner_id, Embedding.SOURCE_QUIZ, quiz.id, quiz_content(quiz))


def delete_embeddings(source_type, source_id):
    Embedding.query.filter_by(source_type=source_type, source_id=source_id).delete()
    db.session.commit()


def match_embeddings(query, owner_id, source_type, threshold=None, count=None):
    """
    Return the owner's embeddings of ``source_type`` most similar to ``query``.

    Args:
        query: search text
        owner_id: restrict to this user's material
        source_type: Embedding.SOURCE_DECK or Embedding.SOURCE_QUIZ
        threshold: minimum cosine similarity (default MATCH_THRESHOLD)
        count: maximum number of matches (default MATCH_COUNT)

    Returns:
        list of dicts with source_id, content, similarity; best first
    """
    if threshold is None:
        threshold = current_app.config.get("MATCH_THRESHOLD", 0.3)
    if count is None:
        count = current_app.config.get("MATCH_COUNT", 3)

    query_vec = generate_embedding(query)
    rows = Embedding.query.filter_by(owner_id=owner_id, source_type=source_type).all()

    results = []
    for emb in rows:
        stored_vec = np.frombuffer(emb.vector_blob, dtype=np.float32)
        if stored_vec.shape != query_vec.shape:
            continue
        sim = float(np.dot(query_vec, stored_vec))
        if sim >= threshold:
            results.append({
                "source_id": emb.source_id,
                "content": emb.content,
                "similarity": sim,
            })

    results.sort(key=lambda x: x["similarity"], reverse=True)
    return results[:count]
