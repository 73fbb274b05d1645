from flask import Blueprint, jsonify, request
from fakeout.models.article import FABRICATION_REASONS
from fakeout.services.content_generator import ContentGenerator

content_bp = Blueprint('content', __name__)


@content_bp.route('/fix', methods=['POST'])
def fix_article_content():
    data = request.get_json(silent=True)
    if not data or not data.get('title') or not data.get('content'):
        return jsonify({'error': 'JSON body with "title" and "content" required'}), 400

    result = ContentGenerator().repair_mismatch(
        data['title'],
        data['content'],
        bool(data.get('is_real')),
        reason=data.get('reason'),
        article_id=data.get('article_id'),
    )
    return jsonify({
        'fixedTitle': result['title'],
        'fixedContent': result['content'],
        'fromCache': result['from_cache'],
    })


@content_bp.route('/generate-fake', methods=['POST'])
def generate_fake():
    data = request.get_json(silent=True) or {}
    category = data.get('category') or 'general'
    fake_type = data.get('fakeType')
    if fake_type not in FABRICATION_REASONS:
        return jsonify({'error': f'"fakeType" must be one of {list(FABRICATION_REASONS)}'}), 400

    article = ContentGenerator().generate_article(category, fake_type)
    return jsonify({
        'title': article['title'],
        'content': article['content'],
        'is_real': False,
        'reason': fake_type,
        'category': category,
        'generated_by': article['generated_by'],
    })
