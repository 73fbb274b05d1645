from flask import Blueprint, jsonify
from sqlalchemy import text
from fakeout.extensions import db
from fakeout.models.article import Article

health_bp = Blueprint('health', __name__)


@health_bp.route('/health')
def health():
    return jsonify({'status': 'ok'})


@health_bp.route('/ready')
def ready():
    try:
        db.session.execute(text('SELECT 1'))
        db_ok = True
        article_count = Article.query.count()
    except Exception:
        db.session.rollback()
        db_ok = False
        article_count = None

    status = 'ready' if db_ok else 'not_ready'
    code = 200 if db_ok else 503
    return jsonify({'status': status, 'db': db_ok, 'articles': article_count}), code
