from datetime import datetime, timezone
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from studysync.extensions import db


class User(UserMixin, db.Model):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False, index=True)
    email = db.Column(db.String(120), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))

    # Gamification profile
    points = db.Column(db.Integer, default=0, nullable=False)
    streak = db.Column(db.Integer, default=0, nullable=False)
    last_pomodoro = db.Column(db.DateTime, nullable=True)
    daily_goal = db.Column(db.Boolean, default=False, nullable=False)
    custom_user_goal = db.Column(db.Integer, default=0, nullable=False)  # pomodoros per day, 0 = none
    progress_on_custom = db.Column(db.Integer, default=0, nullable=False)

    # Relationships
    flashcard_decks = db.relationship("FlashcardDeck", backref="owner", lazy="dynamic", cascade="all, delete-orphan")
    quizzes = db.relationship("Quiz", backref="owner", lazy="dynamic", cascade="all, delete-orphan")
    chat_threads = db.relationship("ChatThread", backref="owner", lazy="dynamic", cascade="all, delete-orphan")

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "points": self.points,
            "streak": self.streak,
            "custom_user_goal": self.custom_user_goal,
            "progress_on_custom": self.progress_on_custom,
        }

    def __repr__(self):
        return f"<User {self.username}>"
