from flask import Blueprint, request, jsonify, render_template, redirect, url_for, flash, current_app
from flask_login import login_user, logout_user, login_required, current_user
from studysync.extensions import db
from studysync.models.user import User

auth_bp = Blueprint("auth", __name__)


def _wants_json():
    return request.is_json


def _form():
    if request.is_json:
        return request.get_json(silent=True) or {}
    return request.form


def _auth_error(message, status, template):
    if _wants_json():
        return jsonify({"error": message}), status
    flash(message, "error")
    return render_template(template), status


@auth_bp.route("/register", methods=["GET", "POST"])
def register():
    if request.method == "GET":
        return render_template("auth/register.html")

    data = _form()
    username = (data.get("username") or "").strip()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    if not username or not email or not password:
        return _auth_error("All fields are required", 400, "auth/register.html")

    if len(password) < 6:
        return _auth_error("Password must be at least 6 characters", 400, "auth/register.html")

    if User.query.filter_by(username=username).first():
        return _auth_error("Username already taken", 409, "auth/register.html")

    if User.query.filter_by(email=email).first():
        return _auth_error("Email already registered", 409, "auth/register.html")

    user = User(username=username, email=email)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"Registered user {user.id}")

    login_user(user)
    if _wants_json():
        return jsonify({"message": "Registration successful", "user": user.to_dict()}), 201
    return redirect(url_for("pages.dashboard"))


@auth_bp.route("/login", methods=["GET", "POST"])
def login():
    if request.method == "GET":
        if current_user.is_authenticated:
            return redirect(url_for("pages.dashboard"))
        return render_template("auth/login.html")

    data = _form()
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not user.check_password(password):
        return _auth_error("Invalid email or password", 401, "auth/login.html")

    login_user(user, remember=True)
    if _wants_json():
        return jsonify({"message": "Login successful", "user": user.to_dict()})
    return redirect(url_for("pages.dashboard"))


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logout_user()
    if _wants_json():
        return jsonify({"message": "Logged out"})
    return redirect(url_for("pages.index"))


@auth_bp.route("/auth/me", methods=["GET"])
@login_required
def me():
    return jsonify({"user": current_user.to_dict()})
