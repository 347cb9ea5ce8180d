from studysync.extensions import db


class Embedding(db.Model):
    __tablename__ = "embeddings"

    SOURCE_DECK = "flashcard_deck"
    SOURCE_QUIZ = "quiz"

    id = db.Column(db.Integer, primary_key=True)
    owner_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    source_type = db.Column(db.String(30), nullable=False)
    source_id = db.Column(db.Integer, nullable=False)
    content = db.Column(db.Text, nullable=False)
    vector_blob = db.Column(db.LargeBinary, nullable=False)  # numpy float32 array as bytes

    __table_args__ = (db.UniqueConstraint("source_type", "source_id", name="uq_embedding_source"),)
