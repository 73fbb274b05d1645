from fakeout.extensions import db
from sqlalchemy import func


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(128), primary_key=True)
    username = db.Column(db.String(256))
    email = db.Column(db.String(320))
    points = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    seen = db.relationship('SeenArticle', back_populates='user', lazy='dynamic',
                           cascade='all, delete-orphan')

    __table_args__ = (
        db.Index('ix_users_points', 'points'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'points': self.points or 0,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }


class SeenArticle(db.Model):
    __tablename__ = 'seen_articles'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(128), db.ForeignKey('users.id', ondelete='CASCADE'), nullable=False)
    article_id = db.Column(db.String(36), db.ForeignKey('articles.id', ondelete='CASCADE'), nullable=False)
    seen_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    user = db.relationship('User', back_populates='seen')

    __table_args__ = (
        db.UniqueConstraint('user_id', 'article_id', name='uq_seen_user_article'),
        db.Index('ix_seen_articles_user', 'user_id'),
    )
