import pytest
from datetime import datetime, timezone
from unittest.mock import patch, MagicMock
from fakeout.models.content_cache import ArticleContentCache
from fakeout.integrations.llm_gateway import LLMGateway
from fakeout.models.cost import LLMCallLog
from fakeout.services.content_generator import (
    ContentGenerator,
    fabricate_from,
    looks_mismatched,
    parse_generated_article,
    parse_repair_response,
)

BASE = {
    'title': 'Researchers Discovered a Faster Battery Chemistry',
    'content': 'The new cells charge in ten minutes. Tests show they improve range and reduce cost.',
    'image_url': 'https://example.com/battery.jpg',
    'category': 'technology',
    'source': 'Example Tech',
}


class TestParsing:
    def test_title_prefix_and_body(self):
        title, content = parse_generated_article(
            'Title: Moon Base Opens to Tourists\nThe base opened on Monday.\nTickets cost $5'
        )
        assert title == 'Moon Base Opens to Tourists'
        assert content == 'The base opened on Monday. Tickets cost $5.'

    def test_single_line_splits_on_first_sentence(self):
        title, content = parse_generated_article('Cats Elected Mayor. The town voted yesterday')
        assert title == 'Cats Elected Mayor'
        assert content == 'The town voted yesterday.'

    def test_repair_response(self):
        headline, content = parse_repair_response(
            'Headline: Better Headline\nContent: Better body.\nSecond line.'
        )
        assert headline == 'Better Headline'
        assert content == 'Better body.\nSecond line.'

    def test_repair_response_missing_fields(self):
        assert parse_repair_response('nonsense') == (None, None)


class TestRuleBasedFabrication:
    def test_false_claim(self):
        fake = fabricate_from(BASE, 'False Claim')
        assert fake['title'] == 'Researchers failed to prove a Faster Battery Chemistry'
        assert fake['content'].startswith('Contrary to widespread claims, the new cells')
        assert fake['is_real'] is False
        assert fake['reason'] == 'False Claim'

    def test_misleading_headline_keeps_body(self):
        fake = fabricate_from(BASE, 'Misleading Headline')
        assert fake['title'].startswith('BREAKING: Revolutionary ')
        assert fake['title'].endswith('Changes Everything We Know')
        assert fake['content'] == BASE['content']

    def test_manipulated_content_swaps_opposites(self):
        fake = fabricate_from(BASE, 'Manipulated Content')
        assert 'worsen range and amplify cost' in fake['content']
        assert fake['title'] == BASE['title']

    def test_conspiracy(self):
        fake = fabricate_from(BASE, 'Conspiracy Theory')
        assert fake['title'] == f"The Truth They Don't Want You to Know: {BASE['title']}"
        assert fake['content'].endswith('This information has been suppressed for decades.')

    def test_every_reason_produces_fabricated_article(self):
        from fakeout.models.article import FABRICATION_REASONS
        for reason in FABRICATION_REASONS:
            fake = fabricate_from(BASE, reason)
            assert fake['reason'] == reason
            assert fake['content'][-1] in '.!?'

    def test_input_not_modified(self):
        original = dict(BASE)
        fabricate_from(BASE, 'Satire or Parody')
        assert BASE == original


class TestGenerateArticle:
    def test_llm_success_logs_usage(self, app, llm_response):
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = llm_response(
            'Title: Scientists Confirm Chocolate Cures Colds\nA study of 12 people found it works'
        )
        with patch('openai.OpenAI', return_value=mock_client) as mock_cls:
            result = ContentGenerator().generate_article('health', 'False Claim')

        assert result['generated_by'] == 'llm'
        assert result['title'] == 'Scientists Confirm Chocolate Cures Colds'
        assert result['content'].endswith('.')
        assert mock_cls.call_args.kwargs['timeout'] == app.config['LLM_TIMEOUT_SECONDS']
        assert mock_cls.call_args.kwargs['max_retries'] == 0
        prompt = mock_client.chat.completions.create.call_args.kwargs['messages'][0]['content']
        assert 'demonstrably untrue' in prompt
        assert LLMCallLog.query.count() == 1

    def test_llm_failure_falls_back(self, app):
        with patch('openai.OpenAI', side_effect=Exception('timeout')):
            result = ContentGenerator().generate_article('technology', 'Satire or Parody')
        assert result['generated_by'] == 'fallback'
        assert result['title'] == 'Apple Unveils iSleep Pod That Replaces Human Need for Sleep'

    def test_budget_exhausted_falls_back(self, app, db_session):
        db_session.add(LLMCallLog(
            call_purpose='generate_article', model='gpt-4o-mini',
            prompt_tokens=500, completion_tokens=500, total_tokens=1000,
        ))
        db_session.commit()
        with patch('openai.OpenAI') as mock_cls:
            result = ContentGenerator().generate_article('science', 'Out of Context')
        mock_cls.assert_not_called()
        assert result['generated_by'] == 'fallback'
        assert result['content'].startswith('In a completely unrelated context')

    def test_unknown_type_rejected(self, app):
        with pytest.raises(ValueError):
            ContentGenerator().generate_article('science', 'Totally Made Up')


class TestRepairMismatch:
    def test_repair_is_cached(self, app, make_article, llm_response):
        article = make_article(is_real=False, reason='Misleading Headline')
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = llm_response(
            'Headline: Fixed Headline\nContent: Fixed content.'
        )
        generator = ContentGenerator()
        with patch('openai.OpenAI', return_value=mock_client):
            first = generator.repair_mismatch(article.title, article.content, False,
                                              article.reason, article_id=article.id)
            second = generator.repair_mismatch(article.title, article.content, False,
                                               article.reason, article_id=article.id)

        assert first == {'title': 'Fixed Headline', 'content': 'Fixed content.', 'from_cache': False}
        assert second['from_cache'] is True
        assert second['title'] == 'Fixed Headline'
        assert mock_client.chat.completions.create.call_count == 1
        assert ArticleContentCache.query.count() == 1

    def test_repair_failure_returns_original(self, app):
        with patch('openai.OpenAI', side_effect=Exception('unreachable')):
            result = ContentGenerator().repair_mismatch('Title', 'Body.', True)
        assert result == {'title': 'Title', 'content': 'Body.', 'from_cache': False}

    def test_real_prompt_forbids_new_facts(self, app, llm_response):
        mock_client = MagicMock()
        mock_client.chat.completions.create.return_value = llm_response('Headline: H\nContent: C')
        with patch('openai.OpenAI', return_value=mock_client):
            ContentGenerator().repair_mismatch('Title', 'Body.', True)
        prompt = mock_client.chat.completions.create.call_args.kwargs['messages'][0]['content']
        assert "Don't make up new facts" in prompt


class TestMismatchHeuristic:
    def test_heuristics(self):
        assert looks_mismatched({'title': 'BREAKING: Something', 'is_real': True})
        assert looks_mismatched({'title': "The Truth They Don't Want You to Know: X", 'is_real': True})
        assert looks_mismatched({'title': 'Plain', 'is_real': False, 'reason': 'Satire or Parody'})
        assert not looks_mismatched({'title': 'Plain', 'is_real': False, 'reason': 'False Claim'})
        assert not looks_mismatched({'title': 'Plain', 'is_real': True, 'reason': None})


class TestLLMGateway:
    def test_budget_window_starts_at_utc_midnight(self, app, db_session):
        db_session.add_all([
            LLMCallLog(call_purpose='generate_article', model='gpt-4o-mini',
                       prompt_tokens=500, completion_tokens=500, total_tokens=1000,
                       created_at=datetime(2026, 3, 1, 23, 50, tzinfo=timezone.utc)),
            LLMCallLog(call_purpose='repair_content', model='gpt-4o-mini',
                       prompt_tokens=100, completion_tokens=100, total_tokens=200,
                       created_at=datetime(2026, 3, 2, 0, 10, tzinfo=timezone.utc)),
        ])
        db_session.commit()

        with patch('fakeout.integrations.llm_gateway.datetime') as mock_dt:
            mock_dt.now.return_value = datetime(2026, 3, 2, 0, 30, tzinfo=timezone.utc)
            usage = LLMGateway().usage_today()

        mock_dt.now.assert_called_with(timezone.utc)
        assert usage['remaining_tokens'] == 800
