import uuid
from fakeout.extensions import db
from sqlalchemy import func

FABRICATION_REASONS = (
    'False Claim',
    'Misleading Headline',
    'Out of Context',
    'Satire or Parody',
    'Impersonation',
    'Manipulated Content',
    'Conspiracy Theory',
)

PLACEHOLDER_IMAGE_URL = 'https://placehold.co/600x400?text=News'


def _new_id():
    return str(uuid.uuid4())


def public_title(title):
    """Titles of some legacy generated rows carry a 'Fake: ' marker."""
    title = title or ''
    if title.startswith('Fake: '):
        return title[len('Fake: '):]
    return title


class Article(db.Model):
    __tablename__ = 'articles'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    title = db.Column(db.String(1024), nullable=False)
    content = db.Column(db.Text, nullable=False)
    image_url = db.Column(db.String(2048))
    is_real = db.Column(db.Boolean, nullable=False)
    reason = db.Column(db.String(64), nullable=True)
    category = db.Column(db.String(64), nullable=False, default='general')
    source = db.Column(db.String(256), default='admin')
    player_views = db.Column(db.Integer, nullable=False, default=0)
    created_at = db.Column(db.DateTime(timezone=True), server_default=func.now())

    __table_args__ = (
        db.Index('ix_articles_real_created', 'is_real', 'created_at'),
        db.Index('ix_articles_category', 'category'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'title': self.title,
            'content': self.content,
            'image_url': self.image_url,
            'is_real': self.is_real,
            'reason': self.reason,
            'category': self.category,
            'source': self.source,
            'player_views': self.player_views or 0,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def to_public_dict(self):
        payload = self.to_dict()
        payload.pop('source', None)
        payload['title'] = public_title(payload['title'])
        return payload


def validate_article_payload(data, partial=False):
    """
    Check title/content/is_real/reason fields of an incoming article dict.
    Returns a list of error strings (empty when valid).
    """
    errors = []
    if not partial:
        for field in ('title', 'content', 'is_real'):
            if field not in data or data[field] in (None, ''):
                errors.append(f'Missing field: {field}')
    if 'is_real' in data and data['is_real'] is not None and not isinstance(data['is_real'], bool):
        errors.append('"is_real" must be a boolean')
    if errors:
        return errors

    is_real = data.get('is_real')
    reason = data.get('reason')
    if is_real is True and reason:
        errors.append('Authentic articles cannot carry a fabrication reason')
    if is_real is False:
        if not reason:
            errors.append('Fabricated articles require a reason')
        elif reason not in FABRICATION_REASONS:
            errors.append(f'Unknown reason: {reason}')
    return errors
