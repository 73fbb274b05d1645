from fakeout.extensions import db
from sqlalchemy import func


class ArticleContentCache(db.Model):
    __tablename__ = 'article_content_cache'

    id = db.Column(db.Integer, primary_key=True)
    original_article_id = db.Column(
        db.String(36), db.ForeignKey('articles.id', ondelete='CASCADE'),
        nullable=False, unique=True,
    )
    original_title = db.Column(db.String(1024))
    original_content = db.Column(db.Text)
    fixed_title = db.Column(db.String(1024), nullable=False)
    fixed_content = db.Column(db.Text, nullable=False)
    is_real = db.Column(db.Boolean, nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    def to_dict(self):
        return {
            'original_article_id': self.original_article_id,
            'fixed_title': self.fixed_title,
            'fixed_content': self.fixed_content,
            'is_real': self.is_real,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
