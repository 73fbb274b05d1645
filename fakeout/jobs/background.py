import logging
import threading
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)


class BackgroundQueue:
    """
    Work that must not hold up a request: corpus replenishment and content
    repair pre-warming. One worker thread, owned by the app; at most one
    replenishment is queued or running at a time.
    """

    def __init__(self, app, max_workers=1):
        self.app = app
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix='fakeout-bg')
        self._lock = threading.Lock()
        self._replenish_future = None
        self._repairs_in_flight = set()

    @property
    def replenishing(self):
        with self._lock:
            return self._replenish_future is not None and not self._replenish_future.done()

    def request_replenishment(self, force=False):
        """Queue a replenishment run. Returns False if one is already pending."""
        with self._lock:
            if self._replenish_future is not None and not self._replenish_future.done():
                logger.debug("Replenishment already in flight; not queueing another")
                return False
            self._replenish_future = self._executor.submit(self._run_replenishment, force)
        return True

    def submit_repairs(self, articles):
        """Queue content repair for article payloads not already being repaired."""
        with self._lock:
            fresh = [a for a in articles if a['id'] not in self._repairs_in_flight]
            self._repairs_in_flight.update(a['id'] for a in fresh)
        if fresh:
            try:
                self._executor.submit(self._run_repairs, fresh)
            except RuntimeError as e:
                with self._lock:
                    self._repairs_in_flight.difference_update(a['id'] for a in fresh)
                logger.warning(f"Could not queue {len(fresh)} content repairs: {e}")
                return 0
        return len(fresh)

    def shutdown(self, wait=True):
        self._executor.shutdown(wait=wait)

    def _run_replenishment(self, force):
        from fakeout.pipeline.replenish import run_replenishment
        with self.app.app_context():
            try:
                return run_replenishment(force=force)
            except Exception as e:
                logger.error(f"Background replenishment failed: {e}")
                return {'status': 'failed', 'error': str(e)}

    def _run_repairs(self, articles):
        from fakeout.services.content_generator import ContentGenerator
        with self.app.app_context():
            generator = ContentGenerator()
            for article in articles:
                try:
                    generator.repair_mismatch(
                        article['title'], article['content'], article['is_real'],
                        article.get('reason'), article_id=article['id'],
                    )
                except Exception as e:
                    logger.warning(f"Pre-warm repair failed for {article['id']}: {e}")
                finally:
                    with self._lock:
                        self._repairs_in_flight.discard(article['id'])
