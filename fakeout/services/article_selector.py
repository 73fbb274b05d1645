import logging
import math
import random
import uuid
from flask import current_app
from fakeout import feature_flags
from fakeout.extensions import db
from fakeout.models.article import Article
from fakeout.models.content_cache import ArticleContentCache
from fakeout.services.content_generator import looks_mismatched
from fakeout.services.player_service import PlayerService
from fakeout.utils.text import normalize_title

logger = logging.getLogger(__name__)

MAX_PREWARM = 3
BACKFILL_CHUNK = 100


class CorpusEmptyError(Exception):
    def __init__(self):
        super().__init__("No articles in the database. An admin needs to add content.")


def dedupe_by_title(articles):
    """Drop articles whose normalized title was already seen, keeping the first."""
    seen_titles = set()
    unique = []
    for article in articles:
        key = normalize_title(article.title)
        if key in seen_titles:
            continue
        seen_titles.add(key)
        unique.append(article)
    return unique


def balance(real, fake, limit):
    """
    Take ceil(limit/2) authentic and the rest fabricated, then top up from
    whichever side still has articles when the other runs short.
    """
    target_real = min(math.ceil(limit / 2), len(real))
    target_fake = min(limit - target_real, len(fake))
    picked = real[:target_real] + fake[:target_fake]

    if len(picked) < limit:
        picked += real[target_real:target_real + (limit - len(picked))]
    if len(picked) < limit:
        picked += fake[target_fake:target_fake + (limit - len(picked))]
    return picked


def repair_adjacency(articles):
    """
    Single left-to-right pass: when two neighbours share is_real, swap the
    second with the nearest later article of the opposite flag. No backtracking,
    so a run can survive when no later candidate exists.
    """
    items = list(articles)
    for i in range(1, len(items)):
        if items[i].is_real != items[i - 1].is_real:
            continue
        for j in range(i + 1, len(items)):
            if items[j].is_real != items[i - 1].is_real:
                items[i], items[j] = items[j], items[i]
                break
    return items


def shuffle_and_alternate(articles):
    items = list(articles)
    random.shuffle(items)
    return repair_adjacency(items)


class ArticleSelector:
    def __init__(self, queue=None, config=None):
        self.config = config or current_app.config
        self._queue = queue
        self.players = PlayerService()

    @property
    def queue(self):
        if self._queue is None:
            self._queue = current_app.extensions.get('fakeout_queue')
        return self._queue

    def select_batch(self, user_id=None, limit=None, ignore_seen=False):
        """
        Pick up to `limit` articles for a user.

        Returns a dict with the public article payloads, the corpus size and the
        number of articles the user hasn't seen yet. `exhausted` is set when a
        small corpus has been fully answered; `seen_reset` when a large corpus
        was and the seen list was cleared.
        """
        limit = self._clamp_limit(limit)
        total = Article.query.count()
        if total == 0:
            raise CorpusEmptyError()

        seen = self.players.seen_ids(user_id) if user_id else set()
        small_threshold = int(self.config.get('SMALL_CORPUS_THRESHOLD', 3))

        if total <= small_threshold:
            if user_id and not ignore_seen and len(seen) >= total:
                logger.info(f"User {user_id} has answered all {total} articles in a small corpus")
                return self._result([], total, len(seen), exhausted=True,
                                    message="You've seen every article we have. Check back soon for more!")
            articles = shuffle_and_alternate(Article.query.all())
            return self._finish(articles, total, len(seen), limit)

        seen_reset = False
        if user_id and not ignore_seen and seen and len(seen) >= total:
            logger.info(f"User {user_id} has seen all {total} articles; resetting seen list")
            self.players.reset_seen(user_id)
            seen = set()
            seen_reset = True

        exclude = set() if ignore_seen else seen
        cap = limit * int(self.config.get('CANDIDATE_MULTIPLIER', 2))

        real = self._candidates(exclude, cap, is_real=True)
        fake = self._candidates(exclude, cap, is_real=False)

        if not real and not fake:
            combined = self._candidates(exclude, cap)
            if not combined and exclude and user_id:
                logger.warning(f"No unseen candidates for {user_id} despite {total - len(seen)} unseen; resetting")
                self.players.reset_seen(user_id)
                seen = set()
                seen_reset = True
                combined = self._candidates(set(), cap)
            real = [a for a in combined if a.is_real]
            fake = [a for a in combined if not a.is_real]

        pool = dedupe_by_title(real + fake)
        if len(pool) < limit:
            pool += self._backfill(pool, exclude, limit - len(pool))

        picked = balance(
            [a for a in pool if a.is_real],
            [a for a in pool if not a.is_real],
            limit,
        )
        ordered = shuffle_and_alternate(picked)

        if len(ordered) < limit / 2:
            self._request_replenishment(len(ordered), limit)

        message = 'You have seen every article, so we started the rotation again.' if seen_reset else None
        return self._finish(ordered, total, len(seen), limit, seen_reset=seen_reset, message=message)

    def _clamp_limit(self, limit):
        default = int(self.config.get('SELECTOR_BATCH_SIZE', 10))
        ceiling = int(self.config.get('SELECTOR_MAX_BATCH_SIZE', 50))
        try:
            limit = int(limit) if limit is not None else default
        except (TypeError, ValueError):
            limit = default
        return max(1, min(limit, ceiling))

    def _candidates(self, exclude, cap, is_real=None):
        query = Article.query
        if is_real is not None:
            query = query.filter(Article.is_real.is_(is_real))
        if exclude:
            query = query.filter(~Article.id.in_(list(exclude)))
        return query.order_by(Article.created_at.desc(), Article.id).limit(cap).all()

    def _backfill(self, pool, exclude, needed):
        """
        Top up a short pool, first from categories that appear fewer than twice
        in it, then from any other unseen article. Ids already taken and titles
        already in the pool are skipped.
        """
        counts = {}
        for article in pool:
            counts[article.category] = counts.get(article.category, 0) + 1
        categories = [row[0] for row in db.session.query(Article.category).distinct()]
        thin = [c for c in categories if counts.get(c, 0) < 2]

        taken = {a.id for a in pool} | set(exclude)
        titles = {normalize_title(a.title) for a in pool}
        extra = []
        passes = [thin, None] if thin else [None]
        for restrict in passes:
            query = Article.query
            if restrict is not None:
                query = query.filter(Article.category.in_(restrict))
            if taken:
                query = query.filter(~Article.id.in_(list(taken)))
            query = query.order_by(Article.created_at.desc(), Article.id)
            offset = 0
            while len(extra) < needed:
                chunk = query.offset(offset).limit(BACKFILL_CHUNK).all()
                if not chunk:
                    break
                offset += len(chunk)
                for article in chunk:
                    key = normalize_title(article.title)
                    if article.id in taken or key in titles:
                        continue
                    taken.add(article.id)
                    titles.add(key)
                    extra.append(article)
                    if len(extra) >= needed:
                        break
            if len(extra) >= needed:
                break

        if extra:
            logger.debug(f"Backfilled {len(extra)} articles (thin categories: {thin})")
        return extra

    def _finish(self, articles, total, seen_count, limit, seen_reset=False, message=None):
        payloads = self._apply_cached_repairs(articles)
        self._record_views(articles)
        self._prewarm(payloads)
        return self._result(payloads, total, seen_count, seen_reset=seen_reset, message=message)

    def _result(self, payloads, total, seen_count, exhausted=False, seen_reset=False, message=None):
        return {
            'articles': payloads,
            'total_articles': total,
            'unseen_articles': max(total - seen_count, 0),
            'exhausted': exhausted,
            'seen_reset': seen_reset,
            'message': message,
        }

    def _apply_cached_repairs(self, articles):
        payloads = [a.to_public_dict() for a in articles]
        if not payloads:
            return payloads
        ids = [p['id'] for p in payloads]
        try:
            cached = {
                c.original_article_id: c
                for c in ArticleContentCache.query.filter(ArticleContentCache.original_article_id.in_(ids))
            }
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Content cache lookup failed: {e}")
            return payloads

        for payload in payloads:
            entry = cached.get(payload['id'])
            if entry:
                payload['title'] = entry.fixed_title
                payload['content'] = entry.fixed_content
                payload['repaired'] = True
        return payloads

    def _record_views(self, articles):
        ids = [a.id for a in articles]
        if not ids:
            return
        try:
            Article.query.filter(Article.id.in_(ids)).update(
                {Article.player_views: Article.player_views + 1},
                synchronize_session=False,
            )
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Failed to increment view counters: {e}")

    def _prewarm(self, payloads):
        if not feature_flags.is_enabled('content_prewarm') or self.queue is None:
            return
        suspicious = [p for p in payloads if not p.get('repaired') and looks_mismatched(p)][:MAX_PREWARM]
        if suspicious:
            self.queue.submit_repairs(suspicious)

    def _request_replenishment(self, returned, limit):
        if not feature_flags.is_enabled('auto_replenish') or self.queue is None:
            logger.info(f"Low supply ({returned}/{limit}) but auto replenishment is off")
            return
        logger.info(f"Low supply ({returned}/{limit}); requesting replenishment")
        self.queue.request_replenishment()


def build_game_session(user_id, limit=None, selector=None):
    """Ephemeral play-through: a fresh id plus the selected batch. Never stored."""
    selector = selector or ArticleSelector()
    batch = selector.select_batch(user_id, limit=limit)
    return {
        'id': str(uuid.uuid4()),
        'user_id': user_id,
        'articles': batch['articles'],
        'answers': {},
        'total_articles': batch['total_articles'],
        'unseen_articles': batch['unseen_articles'],
        'exhausted': batch['exhausted'],
        'seen_reset': batch['seen_reset'],
        'message': batch['message'],
    }
