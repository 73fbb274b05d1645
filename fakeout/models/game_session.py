from fakeout.extensions import db
from sqlalchemy import func


class GameSessionRecord(db.Model):
    """One answered article. Append only."""
    __tablename__ = 'game_sessions'

    id = db.Column(db.Integer, primary_key=True)
    game_session_id = db.Column(db.String(64), nullable=True)
    user_id = db.Column(db.String(128), nullable=False)
    article_id = db.Column(db.String(36), db.ForeignKey('articles.id'), nullable=False)
    user_answer = db.Column(db.Boolean, nullable=False)
    selected_reason = db.Column(db.String(64), nullable=True)
    points_delta = db.Column(db.Integer, nullable=False, default=0)
    timestamp = db.Column(db.DateTime(timezone=True), server_default=func.now())

    article = db.relationship('Article')

    __table_args__ = (
        db.UniqueConstraint('game_session_id', 'article_id', name='uq_game_session_article'),
        db.Index('ix_game_sessions_user_ts', 'user_id', 'timestamp'),
        db.Index('ix_game_sessions_article', 'article_id'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'game_session_id': self.game_session_id,
            'user_id': self.user_id,
            'article_id': self.article_id,
            'user_answer': self.user_answer,
            'selected_reason': self.selected_reason,
            'points_delta': self.points_delta,
            'timestamp': self.timestamp.isoformat() if self.timestamp else None,
        }
