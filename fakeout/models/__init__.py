from fakeout.models.source import Source
from fakeout.models.article import Article
from fakeout.models.user import User, SeenArticle
from fakeout.models.game_session import GameSessionRecord
from fakeout.models.content_cache import ArticleContentCache
from fakeout.models.cost import LLMCallLog

__all__ = [
    'Source', 'Article',
    'User', 'SeenArticle',
    'GameSessionRecord',
    'ArticleContentCache',
    'LLMCallLog',
]
