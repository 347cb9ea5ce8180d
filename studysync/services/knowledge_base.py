from studysync.models.embedding import Embedding
from studysync.services.embedding_service import match_embeddings

BASE_PROMPT = (
    "You are StudySync's Knowledge Base Assistant, a helpful AI that assists students with their study materials. "
    "Answer questions based on the user's study materials, which include flashcards and quizzes."
)
CONTEXT_ONLY_PROMPT = (
    "Only use the provided context to answer questions. "
    "If the answer is not in the context, say that you don't have enough information."
)
GENERAL_KNOWLEDGE_PROMPT = (
    "Prefer the provided context, but you may use general knowledge when the context does not cover the question."
)


def retrieve_context(query, owner_id):
    """Join the owner's best-matching deck and quiz contents, decks first."""
    if not query or not query.strip():
        return ""
    chunks = []
    for source_type in (Embedding.SOURCE_DECK, Embedding.SOURCE_QUIZ):
        chunks.extend(m["content"] for m in match_embeddings(query, owner_id, source_type))
    return "\n\n".join(chunks)


def build_system_prompt(context, use_general_knowledge=False):
    rule = GENERAL_KNOWLEDGE_PROMPT if use_general_knowledge else CONTEXT_ONLY_PROMPT
    return (
        f"{BASE_PROMPT}\n{rule}\n"
        f"Here is the context from the user's study materials:\n\n{context}"
    )


def build_messages(history, owner_id, use_general_knowledge=False):
    """
    Prepend a system message holding knowledge-base context to ``history``.

    ``history`` is a list of ``{"role", "content"}`` dicts; the context is
    retrieved for the last user message in it.
    """
    latest = next((m["content"] for m in reversed(history) if m.get("role") == "user"), "")
    context = retrieve_context(latest, owner_id)
    messages = [{"role": "system", "content": build_system_prompt(context, use_general_knowledge)}]
    messages.extend({"role": m["role"], "content": m["content"]} for m in history)
    return messages
