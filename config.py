import os
from dotenv import load_dotenv

load_dotenv()


class Config:
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-change-me')
    ADMIN_API_KEY = os.getenv('ADMIN_API_KEY')
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'postgresql://localhost/fakeout')
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {'pool_pre_ping': True, 'pool_size': 5}

    # Content generator
    OPENAI_API_KEY = os.getenv('OPENAI_API_KEY')
    LLM_MODEL = os.getenv('LLM_MODEL', 'gpt-4o-mini')
    LLM_TIMEOUT_SECONDS = float(os.getenv('LLM_TIMEOUT_SECONDS', '15'))
    LLM_DAILY_TOKEN_BUDGET = int(os.getenv('LLM_DAILY_TOKEN_BUDGET', '200000'))

    # Article selection
    SELECTOR_BATCH_SIZE = int(os.getenv('SELECTOR_BATCH_SIZE', '10'))
    SELECTOR_MAX_BATCH_SIZE = int(os.getenv('SELECTOR_MAX_BATCH_SIZE', '50'))
    SMALL_CORPUS_THRESHOLD = int(os.getenv('SMALL_CORPUS_THRESHOLD', '3'))
    CANDIDATE_MULTIPLIER = int(os.getenv('CANDIDATE_MULTIPLIER', '2'))

    # Replenishment
    REPLENISH_CORPUS_TARGET = int(os.getenv('REPLENISH_CORPUS_TARGET', '30'))
    REPLENISH_FAKE_COUNT = int(os.getenv('REPLENISH_FAKE_COUNT', '4'))
    RSS_TIMEOUT_SECONDS = float(os.getenv('RSS_TIMEOUT_SECONDS', '10'))
    RSS_ITEMS_PER_FEED = int(os.getenv('RSS_ITEMS_PER_FEED', '8'))

    # Scheduler
    SCHEDULER_ENABLED = os.getenv('SCHEDULER_ENABLED', 'true').lower() == 'true'
    SCHEDULER_API_ENABLED = False
    SOURCE_FAILURE_THRESHOLD = int(os.getenv('SOURCE_FAILURE_THRESHOLD', '3'))
    SOURCE_AUTO_DISABLE_MINUTES = int(os.getenv('SOURCE_AUTO_DISABLE_MINUTES', '180'))
    SOURCE_LATENCY_ALPHA = float(os.getenv('SOURCE_LATENCY_ALPHA', '0.30'))

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class TestConfig(Config):
    TESTING = True
    ADMIN_API_KEY = 'test-admin-key'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    SQLALCHEMY_ENGINE_OPTIONS = {}  # SQLite doesn't support pool_size
    SCHEDULER_ENABLED = False
    LLM_DAILY_TOKEN_BUDGET = 1000
    LLM_TIMEOUT_SECONDS = 1
    OPENAI_API_KEY = 'test-key'
    RSS_TIMEOUT_SECONDS = 1
