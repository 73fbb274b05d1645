import logging
from sqlalchemy.exc import IntegrityError
from fakeout.extensions import db
from fakeout.models.article import Article
from fakeout.models.user import User, SeenArticle
from fakeout.models.game_session import GameSessionRecord

logger = logging.getLogger(__name__)


class PlayerService:
    def get_user(self, user_id):
        user = db.session.get(User, user_id)
        if not user:
            return None
        payload = user.to_dict()
        payload['seen_count'] = len(self.seen_ids(user_id))
        return payload

    def get_or_create_user(self, user_id, username=None, email=None):
        if not user_id:
            raise ValueError('user id is required')
        user = db.session.get(User, user_id)
        if user:
            return user

        user = User(id=user_id, username=username, email=email, points=0)
        db.session.add(user)
        try:
            db.session.commit()
            logger.info(f"Created user {user_id}")
        except IntegrityError:
            # Another request created it first.
            db.session.rollback()
            user = db.session.get(User, user_id)
        return user

    def upsert_user(self, user_id, username=None, email=None, points=0, article_id=None):
        """Create the user, or add points / a seen article to an existing one."""
        user = self.get_or_create_user(user_id, username=username, email=email)
        if username:
            user.username = username
        if email:
            user.email = email
        db.session.commit()

        if points:
            self.add_points(user_id, points)
        if article_id:
            self.mark_seen(user_id, article_id)
        return self.get_user(user_id)

    def add_points(self, user_id, delta):
        """
        Apply a points delta with a single UPDATE so concurrent answers can't
        overwrite each other. Creates a zero-point user and retries when missing.
        """
        updated = User.query.filter_by(id=user_id).update(
            {User.points: User.points + delta}, synchronize_session=False,
        )
        db.session.commit()
        if updated:
            return

        logger.info(f"User {user_id} missing while applying {delta:+d}; creating")
        self.get_or_create_user(user_id)
        updated = User.query.filter_by(id=user_id).update(
            {User.points: User.points + delta}, synchronize_session=False,
        )
        db.session.commit()
        if not updated:
            raise RuntimeError(f"Could not update points for {user_id}")

    def mark_seen(self, user_id, article_id):
        """Idempotent insert into the user's seen set."""
        exists = SeenArticle.query.filter_by(user_id=user_id, article_id=article_id).first()
        if exists:
            return False
        db.session.add(SeenArticle(user_id=user_id, article_id=article_id))
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            return False
        return True

    def seen_ids(self, user_id):
        """Seen article ids that still exist in the article table."""
        rows = (
            db.session.query(SeenArticle.article_id)
            .join(Article, Article.id == SeenArticle.article_id)
            .filter(SeenArticle.user_id == user_id)
            .all()
        )
        return {row[0] for row in rows}

    def reset_seen(self, user_id):
        self.get_or_create_user(user_id)
        cleared = SeenArticle.query.filter_by(user_id=user_id).delete(synchronize_session=False)
        db.session.commit()
        logger.info(f"Reset {cleared} seen articles for {user_id}")
        return cleared

    def leaderboard(self, limit=10):
        users = (
            User.query
            .order_by(User.points.desc(), User.created_at)
            .limit(limit)
            .all()
        )
        return [
            {'rank': i + 1, 'id': u.id, 'username': u.username or 'Anonymous', 'points': u.points or 0}
            for i, u in enumerate(users)
        ]

    def history(self, user_id, page=1, per_page=20):
        pagination = (
            GameSessionRecord.query
            .join(Article, Article.id == GameSessionRecord.article_id)
            .add_entity(Article)
            .filter(GameSessionRecord.user_id == user_id)
            .order_by(GameSessionRecord.timestamp.desc(), GameSessionRecord.id.desc())
            .paginate(page=page, per_page=per_page, error_out=False)
        )

        items = []
        for record, article in pagination.items:
            said_real = record.user_answer
            items.append({
                **record.to_dict(),
                'title': article.to_public_dict()['title'],
                'category': article.category,
                'is_real': article.is_real,
                'reason': article.reason,
                'is_correct': said_real == article.is_real,
            })
        return {
            'items': items,
            'total': pagination.total,
            'page': page,
            'per_page': per_page,
        }
