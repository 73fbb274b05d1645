import logging
import time
from datetime import datetime, timezone
from flask import current_app
from fakeout.extensions import db
from fakeout.models.cost import LLMCallLog

logger = logging.getLogger(__name__)


class BudgetExhaustedError(Exception):
    def __init__(self, remaining=0):
        self.remaining = remaining
        super().__init__("Daily LLM token budget exhausted")


class LLMUnavailableError(Exception):
    pass


class LLMGateway:
    """
    Single entry point for text generation calls.

    Every request goes out with an explicit deadline (LLM_TIMEOUT_SECONDS) handed
    to the OpenAI client and no automatic retries; callers are expected to fall
    back to rule-based text when a call raises.
    """

    def __init__(self, app_config=None):
        config = app_config or current_app.config
        self.model = config.get('LLM_MODEL', 'gpt-4o-mini')
        self.timeout = float(config.get('LLM_TIMEOUT_SECONDS', 15))
        self.daily_budget_tokens = config.get('LLM_DAILY_TOKEN_BUDGET', 200_000)
        self.api_key = config.get('OPENAI_API_KEY')

    @property
    def available(self):
        return bool(self.api_key)

    def call(self, messages, purpose, max_tokens=None, temperature=0.7, article_id=None):
        """
        Check budget, make the call, log usage.
        Returns: {content, prompt_tokens, completion_tokens, total_tokens, model}
        """
        if not self.available:
            raise LLMUnavailableError("OPENAI_API_KEY not configured")

        remaining = self._get_remaining_budget()
        if remaining <= 0:
            raise BudgetExhaustedError(remaining)

        effective_max = min(max_tokens or 400, max(remaining, 100))

        import openai
        client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)

        start_ms = int(time.time() * 1000)
        try:
            response = client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=effective_max,
                temperature=temperature,
            )
        except Exception as e:
            logger.error(f"OpenAI call failed ({purpose}): {e}")
            raise
        latency_ms = int(time.time() * 1000) - start_ms

        usage = response.usage
        self._log_call(purpose, usage, latency_ms, article_id)

        return {
            'content': response.choices[0].message.content or '',
            'prompt_tokens': usage.prompt_tokens,
            'completion_tokens': usage.completion_tokens,
            'total_tokens': usage.total_tokens,
            'model': self.model,
        }

    def _get_remaining_budget(self):
        """Tokens left for today."""
        today_start = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)

        used = db.session.query(
            db.func.coalesce(db.func.sum(LLMCallLog.total_tokens), 0)
        ).filter(LLMCallLog.created_at >= today_start).scalar()
        return self.daily_budget_tokens - used

    def _log_call(self, purpose, usage, latency_ms, article_id=None):
        log = LLMCallLog(
            call_purpose=purpose,
            model=self.model,
            prompt_tokens=usage.prompt_tokens,
            completion_tokens=usage.completion_tokens,
            total_tokens=usage.total_tokens,
            latency_ms=latency_ms,
            article_id=article_id,
        )
        try:
            db.session.add(log)
            db.session.commit()
        except Exception as e:
            db.session.rollback()
            logger.warning(f"Failed to record LLM usage for {purpose}: {e}")
        logger.info(
            f"LLM call: {purpose} | {self.model} | "
            f"{usage.total_tokens} tokens | {latency_ms}ms"
        )

    def usage_today(self):
        return {
            'budget_tokens': self.daily_budget_tokens,
            'remaining_tokens': max(self._get_remaining_budget(), 0),
        }
