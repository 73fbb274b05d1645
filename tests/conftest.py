import os
import pytest
from unittest.mock import MagicMock

# Keep background work off unless a test turns it on
os.environ['FF_AUTO_REPLENISH'] = 'false'
os.environ['FF_CONTENT_PREWARM'] = 'false'

from fakeout import create_app, feature_flags
from fakeout.extensions import db as _db
from fakeout.models.article import Article
from fakeout.models.source import Source
from fakeout.models.user import User, SeenArticle
from config import TestConfig

CATEGORIES = ['science', 'technology', 'health', 'politics']


@pytest.fixture(scope='session')
def app():
    """Create app with test config."""
    app = create_app(TestConfig)
    return app


@pytest.fixture(autouse=True)
def setup_db(app):
    """Create tables before each test, drop after."""
    with app.app_context():
        _db.create_all()
        yield
        _db.session.rollback()
        _db.drop_all()
    feature_flags.init_flags()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    return {'X-Admin-Key': app.config['ADMIN_API_KEY']}


@pytest.fixture
def db_session(app):
    with app.app_context():
        yield _db.session


@pytest.fixture
def fake_queue(app, monkeypatch):
    """Replace the background queue so nothing runs on a worker thread."""
    queue = MagicMock()
    queue.replenishing = False
    queue.request_replenishment.return_value = True
    monkeypatch.setitem(app.extensions, 'fakeout_queue', queue)
    return queue


@pytest.fixture
def make_article(db_session):
    counter = {'n': 0}

    def _make(is_real=True, title=None, category=None, reason=None, **kwargs):
        counter['n'] += 1
        n = counter['n']
        article = Article(
            title=title or f'Article number {n}',
            content=kwargs.pop('content', f'Body text for article number {n}. It has a couple of sentences.'),
            is_real=is_real,
            reason=None if is_real else (reason or 'False Claim'),
            category=category or CATEGORIES[n % len(CATEGORIES)],
            source=kwargs.pop('source', 'test'),
            **kwargs,
        )
        db_session.add(article)
        db_session.commit()
        return article

    return _make


@pytest.fixture
def corpus(make_article):
    """20 authentic + 20 fabricated articles."""
    real = [make_article(is_real=True) for _ in range(20)]
    fake = [make_article(is_real=False) for _ in range(20)]
    return real, fake


@pytest.fixture
def user(db_session):
    u = User(id='user-1', username='Player One', email='p1@example.com', points=0)
    db_session.add(u)
    db_session.commit()
    return u


@pytest.fixture
def mark_seen(db_session):
    def _mark(user_id, articles):
        for article in articles:
            db_session.add(SeenArticle(user_id=user_id, article_id=article.id))
        db_session.commit()
    return _mark


@pytest.fixture
def sample_sources(db_session):
    sources = [
        Source(name='Example Science', url='https://example.com/science.xml', category='science'),
        Source(name='Example Tech', url='https://example.com/tech.xml', category='technology'),
    ]
    for s in sources:
        db_session.add(s)
    db_session.commit()
    return sources


@pytest.fixture
def sample_feed_xml():
    """Load sample RSS feed XML."""
    fixtures_dir = os.path.join(os.path.dirname(__file__), 'fixtures')
    with open(os.path.join(fixtures_dir, 'sample_feed.xml'), 'rb') as f:
        return f.read()


@pytest.fixture
def llm_response():
    """Builds objects shaped like an openai chat completion, as far as the gateway reads them."""
    def _build(text, prompt_tokens=50, completion_tokens=80):
        response = MagicMock()
        response.choices = [MagicMock()]
        response.choices[0].message.content = text
        response.usage.prompt_tokens = prompt_tokens
        response.usage.completion_tokens = completion_tokens
        response.usage.total_tokens = prompt_tokens + completion_tokens
        return response
    return _build
