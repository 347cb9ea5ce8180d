from flask import current_app
from studysync.extensions import db
from studysync.errors import NotFoundError, AccessDeniedError, ValidationError
from studysync.models.flashcard import FlashcardDeck, Flashcard
from studysync.models.embedding import Embedding
from studysync.actions import server_action, require_user, revalidate_path
from studysync.actions.gamification import apply_points, DECK_CREATED_POINTS, CARD_CREATED_POINTS
from studysync.services.embedding_service import generate_and_store_flashcard_embeddings, delete_embeddings

DECKS_PATH = "/dashboard/decks"

DECK_FIELDS = ("title", "description")
CARD_FIELDS = ("question", "answer")


def apply_sort(query, model, sort_by):
    if sort_by == "title_asc":
        return query.order_by(model.title.asc())
    if sort_by == "created_desc":
        return query.order_by(model.created_at.desc(), model.id.desc())
    return query.order_by(model.updated_at.desc(), model.id.desc())


def apply_search(query, model, search_query):
    if search_query:
        pattern = f"%{search_query}%"
        query = query.filter(db.or_(model.title.ilike(pattern), model.description.ilike(pattern)))
    return query


def _clean_updates(updates, allowed):
    if not isinstance(updates, dict):
        raise ValidationError("Updates must be an object")
    return {k: v for k, v in updates.items() if k in allowed}


def _card_text(value, field):
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"Flashcard {field} is required")
    return value.strip()


def _owned_deck(deck_id, user, message="Deck not found or access denied"):
    deck = FlashcardDeck.query.filter_by(id=deck_id, owner_id=user.id).first()
    if deck is None:
        raise NotFoundError(message)
    return deck


def _owned_card(flashcard_id, user):
    card = db.session.get(Flashcard, flashcard_id)
    if card is None:
        raise NotFoundError("Flashcard not found")
    if card.deck.owner_id != user.id:
        raise AccessDeniedError()
    return card


def _refresh_embeddings(deck):
    try:
        generate_and_store_flashcard_embeddings(deck)
    except Exception:
        db.session.rollback()
        current_app.logger.exception(f"Failed to store embeddings for deck {deck.id}")


# ==================== Flashcard Deck Operations ====================

@server_action("flashcards.get_flashcard_decks")
def get_flashcard_decks(search_query="", sort_by="updated_desc"):
    """All decks of the current user, optionally filtered by title/description."""
    user = require_user()
    query = FlashcardDeck.query.filter_by(owner_id=user.id)
    query = apply_search(query, FlashcardDeck, search_query)
    query = apply_sort(query, FlashcardDeck, sort_by)
    return [d.to_dict() for d in query.all()]


@server_action("flashcards.get_flashcard_deck")
def get_flashcard_deck(deck_id):
    user = require_user()
    return _owned_deck(deck_id, user, message="Deck not found").to_dict()


@server_action("flashcards.create_flashcard_deck")
def create_flashcard_deck(title, description=""):
    user = require_user()
    title = (title or "").strip()
    if not title:
        raise ValidationError("Title is required")

    deck = FlashcardDeck(owner_id=user.id, title=title, description=description or "")
    db.session.add(deck)
    apply_points(user, DECK_CREATED_POINTS, commit=False)
    db.session.commit()
    current_app.logger.info(f"User {user.id} created deck {deck.id}")

    _refresh_embeddings(deck)
    revalidate_path(DECKS_PATH)
    return deck.id


@server_action("flashcards.update_flashcard_deck")
def update_flashcard_deck(deck_id, updates):
    user = require_user()
    updates = _clean_updates(updates, DECK_FIELDS)
    deck = _owned_deck(deck_id, user, message="Deck not found")

    if "title" in updates:
        title = (updates["title"] or "").strip()
        if not title:
            raise ValidationError("Title is required")
        deck.title = title
    if "description" in updates:
        deck.description = updates["description"] or ""
    db.session.commit()

    _refresh_embeddings(deck)
    revalidate_path(DECKS_PATH)


@server_action("flashcards.delete_flashcard_deck")
def delete_flashcard_deck(deck_id):
    user = require_user()
    deck = _owned_deck(deck_id, user, message="Deck not found")
    db.session.delete(deck)
    db.session.commit()
    current_app.logger.info(f"User {user.id} deleted deck {deck_id}")

    delete_embeddings(Embedding.SOURCE_DECK, deck_id)
    revalidate_path(DECKS_PATH)


# ==================== Flashcard Operations ====================

@server_action("flashcards.get_flashcards")
def get_flashcards(deck_id):
    user = require_user()
    deck = _owned_deck(deck_id, user)
    cards = Flashcard.query.filter_by(deck_id=deck.id).order_by(Flashcard.position.asc(), Flashcard.id.asc()).all()
    return [c.to_dict() for c in cards]


@server_action("flashcards.create_flashcard")
def create_flashcard(deck_id, question, answer):
    """Append a card to the end of an owned deck."""
    user = require_user()
    question = _card_text(question, "question")
    answer = _card_text(answer, "answer")
    deck = _owned_deck(deck_id, user)

    highest = db.session.query(db.func.max(Flashcard.position)).filter(Flashcard.deck_id == deck.id).scalar()
    new_position = highest + 1 if highest is not None else 0

    card = Flashcard(deck_id=deck.id, question=question, answer=answer, position=new_position)
    db.session.add(card)
    apply_points(user, CARD_CREATED_POINTS, commit=False)
    db.session.commit()

    _refresh_embeddings(deck)
    revalidate_path(DECKS_PATH + "/")
    return card.id


@server_action("flashcards.update_flashcard")
def update_flashcard(flashcard_id, updates):
    user = require_user()
    updates = {field: _card_text(value, field) for field, value in _clean_updates(updates, CARD_FIELDS).items()}
    card = _owned_card(flashcard_id, user)

    for field, value in updates.items():
        setattr(card, field, value)
    db.session.commit()

    _refresh_embeddings(card.deck)
    revalidate_path(DECKS_PATH + "/")


@server_action("flashcards.delete_flashcard")
def delete_flashcard(flashcard_id):
    user = require_user()
    card = _owned_card(flashcard_id, user)
    deck = card.deck
    db.session.delete(card)
    db.session.commit()

    _refresh_embeddings(deck)
    revalidate_path(DECKS_PATH + "/")


@server_action("flashcards.update_flashcard_positions")
def update_flashcard_positions(deck_id, position_updates):
    """Reorder cards. Each update is ``{"id": ..., "position": ...}``; ids outside the deck are ignored."""
    user = require_user()
    deck = FlashcardDeck.query.filter_by(id=deck_id, owner_id=user.id).first()
    if deck is None:
        raise AccessDeniedError()

    for update in position_updates or []:
        try:
            card_id = update["id"]
            position = int(update["position"])
        except (KeyError, TypeError, ValueError):
            raise ValidationError("Each position update needs an id and an integer position")
        Flashcard.query.filter_by(id=card_id, deck_id=deck.id).update({"position": position})

    db.session.commit()
    revalidate_path(DECKS_PATH + "/")


@server_action("flashcards.generate_flashcards_from_document")
def generate_flashcards_from_document(document_id, deck_id=None):
    # TODO: generate cards once documents are stored in this service
    return {
        "success": False,
        "message": "Flashcard generation from documents is not yet implemented",
    }
