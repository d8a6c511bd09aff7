"""
Controller tying the event source, the work queue and the reconciler together
"""
import asyncio
import logging
from .outcome import Failed
from .watcher import DELETED
from .workqueue import Backoff, WorkQueue

logger = logging.getLogger(__name__)


class Controller():
    """
    Run reconciliations concurrently across Secrets, serially per Secret

    Events pass through the work queue with a short debounce delay. A pool
    of workers drains the queue; failures that may go away by themselves
    are queued again with per Secret exponential backoff.
    """

    def __init__(self, watcher, reconciler, sink, workers=2, debounce=0.5, backoff=None):
        self.watcher = watcher
        self.reconciler = reconciler
        self.sink = sink
        self.workers = workers
        self.debounce = debounce
        self.backoff = backoff or Backoff()
        self.queue = WorkQueue()

    def handle_event(self, event):
        if event.kind == DELETED:
            return
        self.queue.add_after(event.ref, self.debounce)

    async def process(self, ref):
        outcome = await self.reconciler.reconcile(ref)
        self.sink.report(ref, outcome)
        if isinstance(outcome, Failed) and outcome.requeue:
            delay = self.backoff.next(ref)
            logger.info("Secret %s requeued in %.1fs", ref, delay)
            self.queue.add_after(ref, delay)
        else:
            self.backoff.forget(ref)
        return outcome

    async def worker(self):
        while True:
            ref = await self.queue.get()
            try:
                await self.process(ref)
            except Exception:
                logger.exception("Unexpected error reconciling secret %s", ref)
            finally:
                self.queue.done(ref)

    async def run(self):
        """
        Consume watch events until cancelled
        """
        workers = [asyncio.ensure_future(self.worker()) for j in range(self.workers)]
        try:
            async for event in self.watcher.events():
                self.handle_event(event)
        finally:
            for task in workers:
                task.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
            self.queue.shutdown()
            logger.info("Controller terminated")
