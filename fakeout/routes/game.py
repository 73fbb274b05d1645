import logging
from flask import Blueprint, jsonify, request
from fakeout.models.article import Article
from fakeout.services.article_selector import ArticleSelector, CorpusEmptyError, build_game_session
from fakeout.services.answer_evaluator import AnswerEvaluator, ArticleNotFoundError, UserUpdateError
from fakeout.services.player_service import PlayerService

logger = logging.getLogger(__name__)

game_bp = Blueprint('game', __name__)


def _truthy(value):
    return str(value).lower() in ('true', '1', 'yes')


def _no_content():
    return jsonify({
        'error': 'No articles available. An admin needs to add content.',
        'code': 'no_content',
    }), 404


def _batch_payload(batch):
    return {
        'articles': batch['articles'],
        'totalArticles': batch['total_articles'],
        'unseenArticles': batch['unseen_articles'],
        'exhausted': batch['exhausted'],
        'seenReset': batch['seen_reset'],
        'message': batch['message'],
    }


@game_bp.route('/articles')
def list_articles():
    """Batch of articles for a player (userId optional)."""
    user_id = request.args.get('userId')
    limit = request.args.get('limit', type=int)
    force_random = _truthy(request.args.get('forceRandom', 'false'))

    try:
        batch = ArticleSelector().select_batch(user_id, limit=limit, ignore_seen=force_random)
    except CorpusEmptyError:
        return _no_content()
    return jsonify(_batch_payload(batch))


@game_bp.route('/game/session', methods=['POST'])
def start_session():
    data = request.get_json(silent=True) or {}
    user_id = data.get('userId')
    if not user_id:
        return jsonify({'error': 'userId is required'}), 400

    try:
        session = build_game_session(user_id, limit=data.get('limit'))
    except CorpusEmptyError:
        return _no_content()

    return jsonify({
        'sessionId': session['id'],
        'userId': session['user_id'],
        'articles': session['articles'],
        'answers': session['answers'],
        'totalArticles': session['total_articles'],
        'unseenArticles': session['unseen_articles'],
        'exhausted': session['exhausted'],
        'seenReset': session['seen_reset'],
        'message': session['message'],
    })


@game_bp.route('/game/more', methods=['POST'])
def more_articles():
    data = request.get_json(silent=True) or {}
    user_id = data.get('userId')
    if not user_id:
        return jsonify({'error': 'userId is required'}), 400

    try:
        batch = ArticleSelector().select_batch(user_id, limit=data.get('limit'))
    except CorpusEmptyError:
        return _no_content()
    return jsonify(_batch_payload(batch))


@game_bp.route('/submit-answer', methods=['POST'])
def submit_answer():
    """userAnswer is true when the player says the article is authentic."""
    data = request.get_json(silent=True)
    if not data:
        return jsonify({'error': 'JSON body required'}), 400

    missing = [f for f in ('userId', 'articleId', 'userAnswer') if data.get(f) in (None, '')]
    if missing:
        return jsonify({'error': f'Missing fields: {missing}'}), 400
    if not isinstance(data['userAnswer'], bool):
        return jsonify({'error': '"userAnswer" must be a boolean'}), 400

    try:
        result = AnswerEvaluator().submit(
            data['userId'],
            data['articleId'],
            says_fabricated=not data['userAnswer'],
            reason=data.get('selectedReason'),
            game_session_id=data.get('sessionId'),
        )
    except ArticleNotFoundError:
        return jsonify({'error': 'Article not found', 'articleId': data['articleId']}), 404
    except UserUpdateError as e:
        return jsonify({'error': f'Failed to update user: {e}'}), 500

    return jsonify({
        'success': True,
        'pointsDelta': result['points_delta'],
        'isCorrect': result['is_correct'],
        'correctAnswer': result['correct_answer'],
        'correctReason': result['correct_reason'],
        'duplicate': result['duplicate'],
        'warning': result['warning'],
    })


@game_bp.route('/reset-seen-articles', methods=['POST'])
def reset_seen_articles():
    data = request.get_json(silent=True) or {}
    user_id = request.args.get('userId') or data.get('userId')
    if not user_id:
        return jsonify({'error': 'userId is required'}), 400

    cleared = PlayerService().reset_seen(user_id)
    return jsonify({'success': True, 'cleared': cleared})


@game_bp.route('/article-count')
def article_count():
    count = Article.query.count()
    recent = Article.query.order_by(Article.created_at.desc(), Article.id).limit(5).all()
    return jsonify({
        'count': count,
        'recent': [
            {'id': a.id, 'title': a.to_public_dict()['title'], 'is_real': a.is_real,
             'created_at': a.created_at.isoformat() if a.created_at else None}
            for a in recent
        ],
    })
