from flask import Blueprint, jsonify, request
from fakeout.services.player_service import PlayerService

users_bp = Blueprint('users', __name__)


@users_bp.route('/users', methods=['POST'])
def create_user():
    """Create a user, or add points/seen article to an existing one."""
    data = request.get_json(silent=True)
    if not data or not data.get('userId'):
        return jsonify({'error': 'JSON body with "userId" required'}), 400

    points = data.get('points', 0)
    if not isinstance(points, int) or isinstance(points, bool):
        return jsonify({'error': '"points" must be an integer'}), 400

    user = PlayerService().upsert_user(
        data['userId'],
        username=data.get('username'),
        email=data.get('email'),
        points=points,
        article_id=data.get('articleId'),
    )
    return jsonify({'success': True, 'user': user})


@users_bp.route('/users/<user_id>')
def get_user(user_id):
    user = PlayerService().get_user(user_id)
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify(user)


@users_bp.route('/users/<user_id>/history')
def user_history(user_id):
    page = max(request.args.get('page', 1, type=int), 1)
    per_page = min(max(request.args.get('per_page', 20, type=int), 1), 100)
    return jsonify(PlayerService().history(user_id, page=page, per_page=per_page))


@users_bp.route('/leaderboard')
def leaderboard():
    limit = min(max(request.args.get('limit', 10, type=int), 1), 100)
    return jsonify({'leaderboard': PlayerService().leaderboard(limit)})
