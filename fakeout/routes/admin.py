import hmac
import logging
from datetime import datetime, timezone
from functools import wraps
from flask import Blueprint, jsonify, request, current_app
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from fakeout import feature_flags
from fakeout.extensions import db
from fakeout.models.article import Article, validate_article_payload
from fakeout.models.content_cache import ArticleContentCache
from fakeout.models.game_session import GameSessionRecord
from fakeout.models.source import Source
from fakeout.models.user import SeenArticle
from fakeout.integrations.llm_gateway import LLMGateway
from fakeout.pipeline.fabricate import fabricate_batch
from fakeout.pipeline.ingest import ingest_feeds, store_articles

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

ARTICLE_FIELDS = ('title', 'content', 'image_url', 'is_real', 'reason', 'category')
MAX_GENERATED_FAKES = 5


def _extract_admin_token():
    auth_header = request.headers.get('Authorization', '')
    if auth_header.lower().startswith('bearer '):
        return auth_header.split(' ', 1)[1].strip()
    return (request.headers.get('X-Admin-Key') or '').strip()


def require_admin_key(func):
    """Require ADMIN_API_KEY for all admin endpoints."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        configured_key = current_app.config.get('ADMIN_API_KEY')
        if not configured_key:
            return jsonify({'error': 'Admin API is disabled: ADMIN_API_KEY is not configured'}), 503

        presented_key = _extract_admin_token()
        if not presented_key or not hmac.compare_digest(presented_key, configured_key):
            return jsonify({'error': 'Unauthorized'}), 401

        return func(*args, **kwargs)

    return wrapper


def _queue():
    return current_app.extensions['fakeout_queue']


# Articles

@admin_bp.route('/articles')
@require_admin_key
def list_articles():
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = min(max(request.args.get('per_page', 25, type=int), 1), 200)

    query = Article.query
    if request.args.get('is_real') in ('true', 'false'):
        query = query.filter(Article.is_real.is_(request.args['is_real'] == 'true'))
    if request.args.get('category'):
        query = query.filter_by(category=request.args['category'])

    pagination = query.order_by(Article.created_at.desc(), Article.id).paginate(
        page=page, per_page=per_page, error_out=False,
    )
    return jsonify({
        'articles': [a.to_dict() for a in pagination.items],
        'total': pagination.total,
        'page': page,
        'per_page': per_page,
    })


@admin_bp.route('/articles/<article_id>')
@require_admin_key
def get_article(article_id):
    article = db.get_or_404(Article, article_id)
    return jsonify(article.to_dict())


@admin_bp.route('/articles', methods=['POST'])
@require_admin_key
def create_article():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'JSON body required'}), 400

    errors = validate_article_payload(data)
    if errors:
        return jsonify({'error': errors}), 400

    article = Article(
        **{f: data.get(f) for f in ARTICLE_FIELDS if f != 'category'},
        category=data.get('category') or 'general',
        source='admin',
    )
    db.session.add(article)
    db.session.commit()
    logger.info(f"Admin created article {article.id}")
    return jsonify(article.to_dict()), 201


@admin_bp.route('/articles/<article_id>', methods=['PUT'])
@require_admin_key
def update_article(article_id):
    article = db.get_or_404(Article, article_id)
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'JSON body required'}), 400

    merged = {f: getattr(article, f) for f in ARTICLE_FIELDS}
    merged.update({f: data[f] for f in ARTICLE_FIELDS if f in data})
    if merged.get('is_real'):
        merged['reason'] = None
    errors = validate_article_payload(merged)
    if errors:
        return jsonify({'error': errors}), 400

    for field in ARTICLE_FIELDS:
        setattr(article, field, merged[field])
    db.session.commit()
    return jsonify(article.to_dict())


@admin_bp.route('/articles/<article_id>', methods=['DELETE'])
@require_admin_key
def delete_article(article_id):
    """Blocked while session records reference the article unless ?force=true."""
    article = db.get_or_404(Article, article_id)
    force = request.args.get('force', 'false').lower() == 'true'

    session_count = GameSessionRecord.query.filter_by(article_id=article_id).count()
    if session_count and not force:
        return jsonify({
            'error': 'Article has recorded answers; pass force=true to delete them too',
            'session_count': session_count,
        }), 409

    try:
        GameSessionRecord.query.filter_by(article_id=article_id).delete(synchronize_session=False)
        SeenArticle.query.filter_by(article_id=article_id).delete(synchronize_session=False)
        ArticleContentCache.query.filter_by(original_article_id=article_id).delete(synchronize_session=False)
        db.session.delete(article)
        db.session.commit()
    except Exception as e:
        db.session.rollback()
        logger.error(f"Failed to delete article {article_id}: {e}")
        return jsonify({'error': 'Delete failed'}), 500

    logger.info(f"Admin deleted article {article_id} ({session_count} session records)")
    return jsonify({'status': 'deleted', 'id': article_id, 'sessions_deleted': session_count})


@admin_bp.route('/articles/export')
@require_admin_key
def export_articles():
    articles = Article.query.order_by(Article.created_at, Article.id).all()
    return jsonify({
        'exported_at': datetime.now(timezone.utc).isoformat(),
        'articles': [a.to_dict() for a in articles],
    })


@admin_bp.route('/articles/import', methods=['POST'])
@require_admin_key
def import_articles():
    """Upsert articles by id; rows failing validation are reported and skipped."""
    data = request.get_json(silent=True)
    if not data or not isinstance(data.get('articles'), list):
        return jsonify({'error': 'JSON body with "articles" list required'}), 400

    created = updated = 0
    rejected = []
    for index, item in enumerate(data['articles']):
        errors = validate_article_payload(item) if isinstance(item, dict) else ['not an object']
        if errors:
            rejected.append({'index': index, 'errors': errors})
            continue

        article = db.session.get(Article, item['id']) if item.get('id') else None
        if article:
            updated += 1
        else:
            article = Article(source=item.get('source') or 'import')
            if item.get('id'):
                article.id = item['id']
            db.session.add(article)
            created += 1
        for field in ARTICLE_FIELDS:
            if field in item:
                setattr(article, field, item[field])
        if not article.category:
            article.category = 'general'

    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        return jsonify({'error': f'Import failed: {e.orig}'}), 409

    return jsonify({'created': created, 'updated': updated, 'rejected': rejected})


@admin_bp.route('/stats')
@require_admin_key
def stats():
    total = Article.query.count()
    real = Article.query.filter(Article.is_real.is_(True)).count()
    viewed = db.session.query(func.count(func.distinct(GameSessionRecord.article_id))).scalar() or 0

    correct = (
        db.session.query(func.count(GameSessionRecord.id))
        .join(Article, Article.id == GameSessionRecord.article_id)
        .filter(GameSessionRecord.user_answer == Article.is_real)
        .scalar()
    ) or 0
    answers = GameSessionRecord.query.count()

    by_category = dict(
        db.session.query(Article.category, func.count(Article.id)).group_by(Article.category).all()
    )
    return jsonify({
        'total_articles': total,
        'real_articles': real,
        'fake_articles': total - real,
        'viewed_articles': viewed,
        'unviewed_articles': max(total - viewed, 0),
        'total_answers': answers,
        'correct_answers': correct,
        'incorrect_answers': answers - correct,
        'by_category': by_category,
        'replenishing': _queue().replenishing,
    })


@admin_bp.route('/sessions')
@require_admin_key
def list_sessions():
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = min(max(request.args.get('per_page', 50, type=int), 1), 200)

    query = GameSessionRecord.query
    if request.args.get('user_id'):
        query = query.filter_by(user_id=request.args['user_id'])
    pagination = query.order_by(GameSessionRecord.timestamp.desc(), GameSessionRecord.id.desc()).paginate(
        page=page, per_page=per_page, error_out=False,
    )
    return jsonify({
        'sessions': [s.to_dict() for s in pagination.items],
        'total': pagination.total,
        'page': page,
        'per_page': per_page,
    })


# Content supply

@admin_bp.route('/replenish', methods=['POST'])
@require_admin_key
def trigger_replenish():
    force = request.args.get('force', 'false').lower() == 'true'
    if not _queue().request_replenishment(force=force):
        return jsonify({'error': 'Replenishment already running'}), 409
    return jsonify({'status': 'queued', 'force': force}), 202


@admin_bp.route('/generate-from-rss', methods=['POST'])
@require_admin_key
def generate_from_rss():
    """Ingest ad-hoc feeds and fabricate articles from what came back."""
    data = request.get_json(silent=True)
    feeds = data.get('feeds') if data else None
    if not isinstance(feeds, list) or not feeds:
        return jsonify({'error': 'JSON body with non-empty "feeds" list required'}), 400
    if any(not isinstance(f, dict) or not f.get('url') for f in feeds):
        return jsonify({'error': 'Each feed needs a "url"'}), 400

    real, errors = ingest_feeds(feeds, max_per_feed=5)
    fakes = store_articles(fabricate_batch(real, MAX_GENERATED_FAKES)) if real else []

    return jsonify({
        'real_added': len(real),
        'fake_added': len(fakes),
        'errors': errors,
        'articles': [{'id': a['id'], 'title': a['title'], 'is_real': a['is_real']} for a in real + fakes],
    })


@admin_bp.route('/llm-usage')
@require_admin_key
def llm_usage():
    return jsonify(LLMGateway().usage_today())


# Sources

@admin_bp.route('/sources')
@require_admin_key
def list_sources():
    sources = Source.query.order_by(Source.category, Source.name).all()
    return jsonify([s.to_dict() for s in sources])


@admin_bp.route('/sources', methods=['POST'])
@require_admin_key
def add_source():
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'JSON body required'}), 400

    missing = [f for f in ('name', 'url') if f not in data]
    if missing:
        return jsonify({'error': f'Missing fields: {missing}'}), 400

    existing = Source.query.filter_by(url=data['url']).first()
    if existing:
        return jsonify({'error': 'Source with this URL already exists', 'id': existing.id}), 409

    source = Source(
        name=data['name'],
        url=data['url'],
        category=data.get('category', 'general'),
        is_active=data.get('is_active', True),
    )
    db.session.add(source)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Source with this URL already exists'}), 409

    return jsonify(source.to_dict()), 201


@admin_bp.route('/sources/<int:source_id>', methods=['PUT'])
@require_admin_key
def update_source(source_id):
    source = db.get_or_404(Source, source_id)
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'JSON body required'}), 400

    if 'url' in data and data['url'] != source.url:
        existing = Source.query.filter_by(url=data['url']).first()
        if existing:
            return jsonify({'error': 'Source with this URL already exists', 'id': existing.id}), 409

    for field in ('name', 'url', 'category', 'is_active'):
        if field in data:
            setattr(source, field, data[field])
    if data.get('is_active'):
        source.auto_disabled_until = None

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify({'error': 'Source with this URL already exists'}), 409

    return jsonify(source.to_dict())


@admin_bp.route('/sources/<int:source_id>', methods=['DELETE'])
@require_admin_key
def delete_source(source_id):
    """Soft-delete a source (set is_active=False)."""
    source = db.get_or_404(Source, source_id)
    source.is_active = False
    db.session.commit()
    return jsonify({'status': 'deactivated', 'id': source_id})


@admin_bp.route('/sources/health')
@require_admin_key
def source_health():
    now = datetime.now(timezone.utc)
    sources = Source.query.order_by(Source.category, Source.name).all()
    states = {
        'healthy': 0,
        'degraded': 0,
        'cooldown': 0,
        'inactive': 0,
    }

    items = []
    for source in sources:
        payload = source.to_dict()
        state = payload['health_state']
        states[state] = states.get(state, 0) + 1
        until = source.cooldown_until()
        payload['is_cooling_down'] = bool(until and until > now)
        items.append(payload)

    return jsonify({
        'summary': states,
        'sources': items,
        'generated_at': now.isoformat(),
    })


# Feature flags

@admin_bp.route('/flags')
@require_admin_key
def list_flags():
    return jsonify(feature_flags.all_flags())


@admin_bp.route('/flags/<key>', methods=['PUT'])
@require_admin_key
def toggle_flag(key):
    data = request.get_json(silent=True)
    if data is None or 'value' not in data:
        return jsonify({'error': 'JSON body with "value" (bool) required'}), 400

    if not isinstance(data['value'], bool):
        return jsonify({'error': '"value" must be a boolean'}), 400

    feature_flags.set_flag(key, data['value'])
    return jsonify({'flag': key, 'value': feature_flags.is_enabled(key)})
