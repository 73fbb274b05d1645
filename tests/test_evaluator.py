import pytest
from unittest.mock import patch, MagicMock
from fakeout.extensions import db
from fakeout.models.game_session import GameSessionRecord
from fakeout.models.user import User, SeenArticle
from fakeout.services.answer_evaluator import (
    AnswerEvaluator,
    ArticleNotFoundError,
    UserUpdateError,
    score_answer,
)


class TestScoring:
    @pytest.mark.parametrize('is_real,true_reason,says_fabricated,chosen,expected', [
        (True, None, False, None, 1),
        (True, None, True, None, -1),
        (True, None, True, 'False Claim', -1),
        (False, 'False Claim', True, None, 2),
        (False, 'False Claim', True, 'False Claim', 3),
        (False, 'False Claim', True, 'Satire or Parody', 1),
        (False, 'False Claim', False, None, -2),
        (False, 'False Claim', False, 'False Claim', -2),
    ])
    def test_score_table(self, is_real, true_reason, says_fabricated, chosen, expected):
        assert score_answer(is_real, true_reason, says_fabricated, chosen) == expected


class TestSubmit:
    def test_unknown_article_applies_nothing(self, app, user):
        with pytest.raises(ArticleNotFoundError):
            AnswerEvaluator().submit(user.id, 'missing-id', says_fabricated=True)

        db.session.refresh(user)
        assert user.points == 0
        assert GameSessionRecord.query.count() == 0

    def test_correct_authentic(self, app, user, make_article):
        article = make_article(is_real=True)
        result = AnswerEvaluator().submit(user.id, article.id, says_fabricated=False)

        assert result['points_delta'] == 1
        assert result['is_correct'] is True
        assert result['correct_answer'] is True
        assert result['correct_reason'] is None
        db.session.refresh(user)
        assert user.points == 1

    def test_fabricated_with_matching_reason(self, app, user, make_article):
        article = make_article(is_real=False, reason='Conspiracy Theory')
        result = AnswerEvaluator().submit(
            user.id, article.id, says_fabricated=True, reason='Conspiracy Theory',
        )
        assert result['points_delta'] == 3
        assert result['correct_reason'] == 'Conspiracy Theory'

    def test_fabricated_called_authentic_goes_negative(self, app, user, make_article):
        article = make_article(is_real=False)
        result = AnswerEvaluator().submit(user.id, article.id, says_fabricated=False)
        assert result['points_delta'] == -2
        assert result['is_correct'] is False
        db.session.refresh(user)
        assert user.points == -2

    def test_reason_ignored_when_user_says_authentic(self, app, user, make_article):
        article = make_article(is_real=False, reason='False Claim')
        AnswerEvaluator().submit(user.id, article.id, says_fabricated=False, reason='False Claim')
        record = GameSessionRecord.query.one()
        assert record.selected_reason is None
        assert record.user_answer is True

    def test_missing_user_created_lazily(self, app, make_article):
        article = make_article(is_real=True)
        AnswerEvaluator().submit('brand-new', article.id, says_fabricated=False)

        created = db.session.get(User, 'brand-new')
        assert created is not None
        assert created.points == 1
        assert SeenArticle.query.filter_by(user_id='brand-new').count() == 1

    def test_seen_list_has_set_semantics(self, app, user, make_article):
        article = make_article(is_real=True)
        evaluator = AnswerEvaluator()
        evaluator.submit(user.id, article.id, says_fabricated=False)
        evaluator.submit(user.id, article.id, says_fabricated=False)

        assert SeenArticle.query.filter_by(user_id=user.id).count() == 1
        assert GameSessionRecord.query.count() == 2

    def test_duplicate_in_same_game_session_applied_once(self, app, user, make_article):
        article = make_article(is_real=False)
        evaluator = AnswerEvaluator()
        first = evaluator.submit(user.id, article.id, says_fabricated=True, game_session_id='g-1')
        second = evaluator.submit(user.id, article.id, says_fabricated=True, game_session_id='g-1')

        assert first['duplicate'] is False
        assert second['duplicate'] is True
        assert second['points_delta'] == 0
        db.session.refresh(user)
        assert user.points == 2
        assert GameSessionRecord.query.count() == 1

    def test_session_log_failure_is_swallowed(self, app, user, make_article):
        article = make_article(is_real=True)
        with patch('fakeout.services.answer_evaluator.GameSessionRecord',
                   side_effect=RuntimeError('log table unavailable')):
            result = AnswerEvaluator().submit(user.id, article.id, says_fabricated=False)

        assert result['points_delta'] == 1
        assert result['warning']
        db.session.refresh(user)
        assert user.points == 1

    def test_user_update_failure_propagates(self, app, user, make_article):
        article = make_article(is_real=True)
        players = MagicMock()
        players.add_points.side_effect = RuntimeError('db down')

        with pytest.raises(UserUpdateError):
            AnswerEvaluator(players=players).submit(
                user.id, article.id, says_fabricated=False, game_session_id='g-1',
            )

        # No points were applied, so the answer is not kept in the log either
        assert GameSessionRecord.query.count() == 0

    def test_retry_after_failed_update_applies_points_once(self, app, user, make_article):
        article = make_article(is_real=True)
        with patch('fakeout.services.answer_evaluator.PlayerService.add_points',
                   side_effect=RuntimeError('db down')):
            with pytest.raises(UserUpdateError):
                AnswerEvaluator().submit(user.id, article.id, says_fabricated=False, game_session_id='g-1')

        evaluator = AnswerEvaluator()
        retry = evaluator.submit(user.id, article.id, says_fabricated=False, game_session_id='g-1')
        again = evaluator.submit(user.id, article.id, says_fabricated=False, game_session_id='g-1')

        assert retry['duplicate'] is False
        assert retry['points_delta'] == 1
        assert again['duplicate'] is True
        db.session.refresh(user)
        assert user.points == 1
        assert GameSessionRecord.query.count() == 1
        assert SeenArticle.query.filter_by(user_id=user.id, article_id=article.id).count() == 1

    def test_retry_after_failed_seen_update_marks_seen_without_rescoring(self, app, user, make_article):
        article = make_article(is_real=False)
        with patch('fakeout.services.answer_evaluator.PlayerService.mark_seen',
                   side_effect=RuntimeError('db down')):
            with pytest.raises(UserUpdateError):
                AnswerEvaluator().submit(user.id, article.id, says_fabricated=True, game_session_id='g-2')

        retry = AnswerEvaluator().submit(user.id, article.id, says_fabricated=True, game_session_id='g-2')

        assert retry['duplicate'] is True
        db.session.refresh(user)
        assert user.points == 2
        assert SeenArticle.query.filter_by(user_id=user.id, article_id=article.id).count() == 1

    def test_points_accumulate(self, app, user, make_article):
        evaluator = AnswerEvaluator()
        evaluator.submit(user.id, make_article(is_real=True).id, says_fabricated=False)
        evaluator.submit(user.id, make_article(is_real=True).id, says_fabricated=True)
        evaluator.submit(user.id, make_article(is_real=False).id, says_fabricated=True)
        db.session.refresh(user)
        assert user.points == 1 - 1 + 2
