import json
from flask import Blueprint, request, jsonify, Response, stream_with_context, current_app
from flask_login import login_required, current_user
from studysync.extensions import db
from studysync.models.chat import ChatThread, ChatMessage
from studysync.services.knowledge_base import build_messages
from studysync.services.openrouter import OpenRouterService, OpenRouterError

chat_bp = Blueprint("chat", __name__, url_prefix="/api/chat")

ROLES = ("user", "assistant", "system")


def _owned_thread_or_404(thread_id):
    thread = ChatThread.query.filter_by(id=thread_id, owner_id=current_user.id).first()
    if thread is None:
        return None, (jsonify({"error": "Thread not found or access denied"}), 404)
    return thread, None


def _sse_response(chunks, on_complete=None):
    """Stream completion chunks as Server-Sent Events, then hand the full text to ``on_complete``."""
    def generate():
        full_response = ""
        try:
            for chunk in chunks():
                full_response += chunk
                yield f"data: {json.dumps({'content': chunk})}\n\n"
        except OpenRouterError as e:
            current_app.logger.error(f"Chat completion failed: {e}")
            yield f"data: {json.dumps({'error': str(e)})}\n\n"

        if full_response and on_complete is not None:
            on_complete(full_response)

        yield "data: [DONE]\n\n"

    return Response(
        stream_with_context(generate()),
        mimetype="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )


@chat_bp.route("", methods=["POST"])
@login_required
def knowledge_base_chat():
    """Stateless completion over the posted message history."""
    data = request.get_json(silent=True) or {}
    history = data.get("messages") or []
    if not isinstance(history, list) or not all(
        isinstance(m, dict) and m.get("role") in ROLES and isinstance(m.get("content"), str) for m in history
    ):
        return jsonify({"error": "messages must be a list of {role, content}"}), 400
    if not history:
        return jsonify({"error": "At least one message is required"}), 400

    messages = build_messages(history, current_user.id, use_general_knowledge=bool(data.get("useGeneralKnowledge")))
    service = OpenRouterService()
    return _sse_response(lambda: service.chat_completion_stream(messages))


@chat_bp.route("/threads", methods=["GET"])
@login_required
def list_threads():
    threads = ChatThread.query.filter_by(owner_id=current_user.id).order_by(
        ChatThread.created_at.desc(), ChatThread.id.desc()
    ).all()
    return jsonify({"threads": [t.to_dict() for t in threads]})


@chat_bp.route("/threads", methods=["POST"])
@login_required
def create_thread():
    data = request.get_json(silent=True) or {}
    thread = ChatThread(
        owner_id=current_user.id,
        title=data.get("title") or "New Chat",
        use_general_knowledge=bool(data.get("useGeneralKnowledge", False)),
    )
    db.session.add(thread)
    db.session.commit()
    return jsonify({"thread": thread.to_dict()}), 201


@chat_bp.route("/threads/delete-all", methods=["DELETE"])
@login_required
def delete_all_threads():
    threads = ChatThread.query.filter_by(owner_id=current_user.id).all()
    for thread in threads:
        db.session.delete(thread)
    db.session.commit()
    current_app.logger.info(f"User {current_user.id} deleted {len(threads)} chat thread(s)")
    return jsonify({"success": True})


@chat_bp.route("/threads/<int:thread_id>", methods=["GET"])
@login_required
def get_thread(thread_id):
    thread, error = _owned_thread_or_404(thread_id)
    if error:
        return error
    return jsonify({
        "thread": thread.to_dict(),
        "messages": [m.to_dict() for m in thread.messages],
    })


@chat_bp.route("/threads/<int:thread_id>", methods=["PUT"])
@login_required
def update_thread(thread_id):
    thread, error = _owned_thread_or_404(thread_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    if "title" in data:
        thread.title = data["title"] or "New Chat"
    if "useGeneralKnowledge" in data:
        thread.use_general_knowledge = bool(data["useGeneralKnowledge"])
    db.session.commit()
    return jsonify({"thread": thread.to_dict()})


@chat_bp.route("/threads/<int:thread_id>", methods=["DELETE"])
@login_required
def delete_thread(thread_id):
    thread, error = _owned_thread_or_404(thread_id)
    if error:
        return error
    db.session.delete(thread)
    db.session.commit()
    return jsonify({"success": True})


@chat_bp.route("/threads/<int:thread_id>/messages", methods=["POST"])
@login_required
def send_message(thread_id):
    thread, error = _owned_thread_or_404(thread_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    content = (data.get("content") or "").strip()
    stream = data.get("stream", True)
    if not content:
        return jsonify({"error": "Message content is required"}), 400

    user_msg = ChatMessage(thread_id=thread.id, role="user", content=content)
    db.session.add(user_msg)
    db.session.commit()

    # Auto-title on first message
    if len(thread.messages) <= 1:
        thread.title = content[:50] + ("..." if len(content) > 50 else "")
        db.session.commit()

    history = [{"role": m.role, "content": m.content} for m in thread.messages]
    messages = build_messages(history, current_user.id, use_general_knowledge=thread.use_general_knowledge)
    service = OpenRouterService()
    thread_id = thread.id

    def save_reply(text):
        db.session.add(ChatMessage(thread_id=thread_id, role="assistant", content=text))
        db.session.commit()

    if stream:
        return _sse_response(lambda: service.chat_completion_stream(messages), on_complete=save_reply)

    try:
        reply = service.chat_completion(messages)
    except OpenRouterError as e:
        current_app.logger.error(f"Chat completion failed: {e}")
        return jsonify({"error": str(e)}), 502
    assistant_msg = ChatMessage(thread_id=thread_id, role="assistant", content=reply)
    db.session.add(assistant_msg)
    db.session.commit()
    return jsonify(assistant_msg.to_dict())
