"""
Work queue keyed by resource identity

A key is queued at most once no matter how many events arrive for it, and a
key being reconciled is never handed out to a second worker. Events arriving
while a key is processed mark it dirty so it runs again right after.
"""
import asyncio


class WorkQueue():
    def __init__(self):
        self.queue = asyncio.Queue()
        self.queued = set()
        self.processing = set()
        self.dirty = set()
        self.delayed = {}

    def add(self, key):
        if key in self.processing:
            self.dirty.add(key)
        elif key not in self.queued:
            self.queued.add(key)
            self.queue.put_nowait(key)

    def add_after(self, key, delay):
        """
        Add key once `delay` seconds have passed, merging with an earlier pending add
        """
        if delay <= 0:
            self.add(key)
            return
        loop = asyncio.get_running_loop()
        when = loop.time() + delay
        handle = self.delayed.get(key)
        if handle is not None:
            if handle.when() <= when:
                return
            handle.cancel()
        self.delayed[key] = loop.call_at(when, self._fire, key)

    def _fire(self, key):
        self.delayed.pop(key, None)
        self.add(key)

    async def get(self):
        key = await self.queue.get()
        self.queued.discard(key)
        self.processing.add(key)
        return key

    def done(self, key):
        self.processing.discard(key)
        if key in self.dirty:
            self.dirty.discard(key)
            self.add(key)

    def __len__(self):
        return len(self.queued)

    def shutdown(self):
        for handle in self.delayed.values():
            handle.cancel()
        self.delayed.clear()


class Backoff():
    """
    Per key exponential delay for failures that are retried automatically
    """

    def __init__(self, base=5.0, cap=300.0):
        self.base = base
        self.cap = cap
        self.failures = {}

    def next(self, key):
        failures = self.failures.get(key, 0)
        self.failures[key] = failures + 1
        return min(self.base * 2 ** failures, self.cap)

    def forget(self, key):
        self.failures.pop(key, None)
