from datetime import datetime, timezone
from studysync.extensions import db


class Quiz(db.Model):
    __tablename__ = "quizzes"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc))
    updated_at = db.Column(db.DateTime, default=lambda: datetime.now(timezone.utc), onupdate=lambda: datetime.now(timezone.utc))

    questions = db.relationship("QuizQuestion", backref="quiz", lazy="select", cascade="all, delete-orphan",
                                order_by="QuizQuestion.position")

    def to_dict(self):
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "title": self.title,
            "description": self.description,
            "question_count": len(self.questions),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


class QuizQuestion(db.Model):
    __tablename__ = "quiz_questions"

    ANSWER_FIELDS = ("answer_a", "answer_b", "answer_c", "answer_d")

    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey("quizzes.id"), nullable=False, index=True)
    question = db.Column(db.Text, nullable=False)
    answer_a = db.Column(db.Text, default="")
    answer_b = db.Column(db.Text, default="")
    answer_c = db.Column(db.Text, default="")
    answer_d = db.Column(db.Text, default="")
    correct = db.Column(db.Integer, nullable=False, default=0)  # index into ANSWER_FIELDS
    position = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self):
        return {
            "id": self.id,
            "quiz_id": self.quiz_id,
            "question": self.question,
            "answer_a": self.answer_a,
            "answer_b": self.answer_b,
            "answer_c": self.answer_c,
            "answer_d": self.answer_d,
            "correct": self.correct,
            "position": self.position,
        }
