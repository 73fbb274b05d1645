import logging
from sqlalchemy.exc import IntegrityError
from fakeout.extensions import db
from fakeout.models.article import Article
from fakeout.models.game_session import GameSessionRecord
from fakeout.services.player_service import PlayerService

logger = logging.getLogger(__name__)


class ArticleNotFoundError(Exception):
    def __init__(self, article_id):
        self.article_id = article_id
        super().__init__(f"Article not found: {article_id}")


class UserUpdateError(Exception):
    pass


def score_answer(is_real, true_reason, says_fabricated, chosen_reason=None):
    """
    Points for one answer.

    Authentic judged authentic +1, fabricated judged fabricated +2,
    authentic judged fabricated -1, fabricated judged authentic -2.
    A chosen reason on a correctly spotted fabrication adds +1 if it matches, -1 if not.
    """
    if is_real:
        return -1 if says_fabricated else 1

    if not says_fabricated:
        return -2

    delta = 2
    if chosen_reason:
        delta += 1 if chosen_reason == true_reason else -1
    return delta


class AnswerEvaluator:
    def __init__(self, players=None):
        self.players = players or PlayerService()

    def submit(self, user_id, article_id, says_fabricated, reason=None, game_session_id=None):
        if not user_id:
            raise ValueError('userId is required')

        article = db.session.get(Article, article_id) if article_id else None
        if not article:
            raise ArticleNotFoundError(article_id)

        chosen_reason = reason if says_fabricated else None
        delta = score_answer(article.is_real, article.reason, says_fabricated, chosen_reason)
        is_correct = says_fabricated != article.is_real

        record_id, duplicate = self._log_session(
            user_id, article_id, says_fabricated, chosen_reason, delta, game_session_id,
        )

        if not duplicate:
            try:
                self.players.add_points(user_id, delta)
            except Exception as e:
                db.session.rollback()
                logger.error(f"Failed to apply {delta:+d} to {user_id} for {article_id}: {e}")
                # Drop the log row so a retry of this answer is not taken for a duplicate
                self._forget_session(record_id)
                raise UserUpdateError(str(e)) from e

        # Also runs on duplicates so a retry completes a half-applied answer
        try:
            self.players.mark_seen(user_id, article_id)
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to mark {article_id} seen for {user_id}: {e}")
            raise UserUpdateError(str(e)) from e

        logger.info(
            f"Answer: user={user_id} article={article_id} fabricated={says_fabricated} "
            f"reason={chosen_reason} delta={delta:+d}{' (duplicate)' if duplicate else ''}"
        )
        return {
            'points_delta': 0 if duplicate else delta,
            'is_correct': is_correct,
            'correct_answer': article.is_real,
            'correct_reason': article.reason,
            'duplicate': duplicate,
            'warning': None if record_id or duplicate else 'Answer scored but not recorded in history',
        }

    def _log_session(self, user_id, article_id, says_fabricated, reason, delta, game_session_id):
        """
        Append the answer to the session log. A repeat of the same answer within
        one game session is reported as a duplicate; other failures are swallowed.
        Returns (record id or None, duplicate).
        """
        try:
            record = GameSessionRecord(
                game_session_id=game_session_id,
                user_id=user_id,
                article_id=article_id,
                user_answer=not says_fabricated,
                selected_reason=reason,
                points_delta=delta,
            )
            db.session.add(record)
            db.session.commit()
            return record.id, False
        except IntegrityError as e:
            db.session.rollback()
            if not game_session_id:
                logger.warning(f"Failed to log session record for {user_id}/{article_id}: {e}")
                return None, False
            logger.info(f"Duplicate answer ignored: session={game_session_id} article={article_id}")
            return None, True
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Failed to log session record for {user_id}/{article_id}: {e}")
            return None, False

    def _forget_session(self, record_id):
        if record_id is None:
            return
        try:
            GameSessionRecord.query.filter_by(id=record_id).delete(synchronize_session=False)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.error(f"Failed to remove session record {record_id} after a failed update: {e}")
