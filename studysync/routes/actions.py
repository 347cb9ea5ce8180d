from flask import Blueprint, request, jsonify
from studysync.actions import run_action, registered_actions
from studysync.errors import ValidationError

# Importing the action modules registers their actions
from studysync.actions import flashcards, quizzes, gamification  # noqa: F401

actions_bp = Blueprint("actions", __name__, url_prefix="/actions")


@actions_bp.route("", methods=["GET"])
def list_actions():
    return jsonify({"actions": registered_actions()})


@actions_bp.route("/<name>", methods=["POST"])
def invoke(name):
    """
    Run a server action with the JSON body as keyword arguments.

    Responds with ``{"success", "data", "revalidated", "redirect"}``.
    """
    data = request.get_json(silent=True)
    if data is None:
        if request.data:
            raise ValidationError("Request body must be JSON")
        data = {}
    result = run_action(name, data)
    return jsonify(result.to_dict())
