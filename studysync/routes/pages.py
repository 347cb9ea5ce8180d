from flask import Blueprint, render_template, request, flash
from flask_login import login_required, current_user
from studysync.models.chat import ChatThread
from studysync.actions.flashcards import get_flashcard_decks
from studysync.actions.quizzes import get_quizzes
from studysync.actions.gamification import get_leaderboard_info, check_daily_reward, DAILY_REWARD_POINTS
from studysync.services.page_cache import cached_page

pages_bp = Blueprint("pages", __name__)

SORT_OPTIONS = [
    ("updated_desc", "Recently updated"),
    ("created_desc", "Recently created"),
    ("title_asc", "Title (A-Z)"),
]


def _render_chat_layout(selected_thread_id):
    """ChatLayout: the thread sidebar plus the window for ``selected_thread_id`` (None composes a new chat)."""
    threads = ChatThread.query.filter_by(owner_id=current_user.id).order_by(
        ChatThread.created_at.desc(), ChatThread.id.desc()
    ).all()
    selected = None
    if selected_thread_id is not None and selected_thread_id.isascii() and selected_thread_id.isdigit():
        selected = ChatThread.query.filter_by(id=int(selected_thread_id), owner_id=current_user.id).first()
    return render_template(
        "chat/layout.html",
        threads=threads,
        selected_thread_id=selected_thread_id,
        selected_thread=selected,
    )


@pages_bp.route("/")
def index():
    return render_template("landing.html")


@pages_bp.route("/dashboard")
@login_required
def dashboard():
    if check_daily_reward():
        flash(f"Daily goal reached! +{DAILY_REWARD_POINTS} points", "success")
    return render_template("dashboard.html", leaderboard=get_leaderboard_info())


@pages_bp.route("/dashboard/chat")
@login_required
def chat_page():
    return _render_chat_layout(None)


@pages_bp.route("/dashboard/chat/new")
@login_required
def new_chat_page():
    return _render_chat_layout(None)


@pages_bp.route("/dashboard/chat/<thread_id>")
@login_required
def chat_thread_page(thread_id):
    return _render_chat_layout(thread_id)


@pages_bp.route("/dashboard/quizzes")
@login_required
@cached_page
def quizzes_page():
    search_query = request.args.get("q", "")
    sort_by = request.args.get("sort", "updated_desc")
    return render_template(
        "quizzes.html",
        quizzes=get_quizzes(search_query=search_query, sort_by=sort_by),
        search_query=search_query,
        sort_by=sort_by,
        sort_options=SORT_OPTIONS,
        creating=request.args.get("create") == "true",
    )


@pages_bp.route("/dashboard/decks")
@login_required
@cached_page
def decks_page():
    search_query = request.args.get("q", "")
    sort_by = request.args.get("sort", "updated_desc")
    return render_template(
        "decks.html",
        decks=get_flashcard_decks(search_query=search_query, sort_by=sort_by),
        search_query=search_query,
        sort_by=sort_by,
        sort_options=SORT_OPTIONS,
    )
