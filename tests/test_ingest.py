import pytest
import requests
from datetime import datetime, timezone, timedelta
from unittest.mock import patch, MagicMock
from fakeout.models.article import Article, PLACEHOLDER_IMAGE_URL
from fakeout.integrations.rss import extract_image_url, fetch_feed, fetch_feed_items, normalize_entry
from fakeout.pipeline.ingest import ingest_feeds, ingest_sources, store_articles
from fakeout.utils.text import truncate_to_sentences


def _response(content):
    resp = MagicMock()
    resp.content = content
    resp.raise_for_status.return_value = None
    return resp


class TestRSSFetch:
    def test_fetch_feed_parses_entries(self, app, sample_feed_xml):
        with patch('fakeout.integrations.rss.requests.get', return_value=_response(sample_feed_xml)) as mock_get:
            entries, meta = fetch_feed('https://example.com/feed.xml', timeout=3)

        assert meta == {'ok': True, 'error': None}
        assert len(entries) == 4
        assert mock_get.call_args.kwargs['timeout'] == 3

    def test_fetch_feed_respects_limit(self, app, sample_feed_xml):
        with patch('fakeout.integrations.rss.requests.get', return_value=_response(sample_feed_xml)):
            entries, _ = fetch_feed('https://example.com/feed.xml', limit=2)
        assert len(entries) == 2

    def test_fetch_feed_network_error(self, app):
        with patch('fakeout.integrations.rss.requests.get',
                   side_effect=requests.exceptions.Timeout('too slow')):
            entries, meta = fetch_feed('https://example.com/feed.xml')
        assert entries == []
        assert meta['ok'] is False
        assert 'too slow' in meta['error']

    def test_fetch_feed_handles_malformed(self, app):
        mock_feed = MagicMock()
        mock_feed.bozo = True
        mock_feed.entries = []
        mock_feed.bozo_exception = Exception("Malformed")

        with patch('fakeout.integrations.rss.requests.get', return_value=_response(b'<rss')), \
                patch('fakeout.integrations.rss.feedparser.parse', return_value=mock_feed):
            entries, meta = fetch_feed('https://example.com/feed.xml')

        assert entries == []
        assert meta['ok'] is False

    def test_items_normalized_into_article_shape(self, app, sample_feed_xml):
        with patch('fakeout.integrations.rss.requests.get', return_value=_response(sample_feed_xml)):
            items, meta = fetch_feed_items('https://example.com/feed.xml', category='science',
                                           source_name='Example Science')

        # The "Too short." entry is dropped
        assert [i['title'] for i in items] == [
            'Astronomers Map the Largest Known Galaxy Cluster',
            'Battery Recycling Plant Opens in Nevada',
            'Coral Reefs Show Signs of Recovery',
        ]
        first, second, third = items
        assert first['image_url'] == 'https://example.com/images/cluster.jpg'
        assert second['image_url'] == 'https://example.com/images/battery.png'
        assert '<' not in second['content']
        assert third['image_url'] == PLACEHOLDER_IMAGE_URL
        assert all(i['is_real'] is True and i['reason'] is None for i in items)
        assert all(i['category'] == 'science' and i['source'] == 'Example Science' for i in items)


class TestNormalization:
    def test_long_content_truncated(self):
        sentence = 'This sentence is filler text for the truncation test. '
        entry = dict(title='Long', summary=sentence * 20)
        item = normalize_entry(entry)
        assert len(item['content']) <= 503
        assert item['content'].count('.') <= 4

    def test_truncate_short_text_untouched(self):
        assert truncate_to_sentences('One. Two.', n=1) == 'One. Two.'

    def test_missing_title_dropped(self):
        entry = dict(title='', summary='x' * 80)
        assert normalize_entry(entry) is None

    def test_enclosure_image(self):
        entry = dict(
            title='T',
            enclosures=[{'href': 'https://example.com/e.jpg', 'type': 'image/jpeg'}],
        )
        assert extract_image_url(entry) == 'https://example.com/e.jpg'

    def test_background_image_in_html(self):
        entry = dict(
            title='T',
            summary='<div style="background-image: url(https://example.com/bg.jpg)">Text</div>',
        )
        assert extract_image_url(entry) == 'https://example.com/bg.jpg'


class TestStoreArticles:
    def test_skips_existing_titles(self, app, make_article):
        make_article(is_real=True, title='Already Here')
        stored = store_articles([
            {'title': 'already here ', 'content': 'Body.', 'is_real': True, 'category': 'science'},
            {'title': 'Brand New', 'content': 'Body.', 'is_real': True, 'category': 'science'},
            {'title': 'brand new', 'content': 'Body again.', 'is_real': True, 'category': 'science'},
        ])
        assert [s['title'] for s in stored] == ['Brand New']
        assert stored[0]['id']
        assert Article.query.count() == 2

    def test_empty_input(self, app):
        assert store_articles([]) == []


class TestIngestSources:
    def test_success_updates_health(self, app, sample_sources, sample_feed_xml):
        with patch('fakeout.integrations.rss.requests.get', return_value=_response(sample_feed_xml)):
            stored = ingest_sources()

        # Both sources serve the same feed; titles are only stored once
        assert len(stored) == 3
        assert Article.query.count() == 3
        for source in sample_sources:
            assert source.consecutive_successes == 1
            assert source.last_success_at is not None
            assert source.avg_latency_ms is not None

    def test_failure_enters_cooldown_after_threshold(self, app, sample_sources):
        source = sample_sources[0]
        with patch('fakeout.integrations.rss.requests.get', side_effect=requests.exceptions.ConnectionError('down')):
            for _ in range(app.config['SOURCE_FAILURE_THRESHOLD']):
                ingest_sources()

        assert source.consecutive_failures == app.config['SOURCE_FAILURE_THRESHOLD']
        assert source.auto_disabled_until is not None
        assert source.health_state() == 'cooldown'
        assert 'down' in source.last_error

    def test_cooldown_sources_skipped(self, app, db_session, sample_sources):
        for source in sample_sources:
            source.auto_disabled_until = datetime.now(timezone.utc) + timedelta(hours=1)
        db_session.commit()

        with patch('fakeout.integrations.rss.requests.get') as mock_get:
            assert ingest_sources() == []
        mock_get.assert_not_called()

    def test_inactive_sources_skipped(self, app, db_session, sample_sources):
        for source in sample_sources:
            source.is_active = False
        db_session.commit()

        with patch('fakeout.integrations.rss.requests.get') as mock_get:
            ingest_sources()
        mock_get.assert_not_called()


class TestIngestFeeds:
    def test_reports_failed_feeds(self, app, sample_feed_xml):
        def fake_get(url, **kwargs):
            if 'bad' in url:
                raise requests.exceptions.ConnectionError('refused')
            return _response(sample_feed_xml)

        with patch('fakeout.integrations.rss.requests.get', side_effect=fake_get):
            stored, errors = ingest_feeds([
                {'url': 'https://good.example.com/rss', 'category': 'technology'},
                {'url': 'https://bad.example.com/rss'},
            ])

        assert len(stored) == 3
        assert all(s['category'] == 'technology' for s in stored)
        assert errors[0]['url'] == 'https://bad.example.com/rss'
