from fakeout.extensions import db
from sqlalchemy import func


class LLMCallLog(db.Model):
    __tablename__ = 'llm_call_logs'

    id = db.Column(db.Integer, primary_key=True)
    call_purpose = db.Column(db.String(128), nullable=False)
    model = db.Column(db.String(64), nullable=False)
    prompt_tokens = db.Column(db.Integer, nullable=False)
    completion_tokens = db.Column(db.Integer, nullable=False)
    total_tokens = db.Column(db.Integer, nullable=False)
    latency_ms = db.Column(db.Integer)
    article_id = db.Column(db.String(36), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        db.Index('ix_llm_logs_created', 'created_at'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'call_purpose': self.call_purpose,
            'model': self.model,
            'prompt_tokens': self.prompt_tokens,
            'completion_tokens': self.completion_tokens,
            'total_tokens': self.total_tokens,
            'latency_ms': self.latency_ms,
            'article_id': self.article_id,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
