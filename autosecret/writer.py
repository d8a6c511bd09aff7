"""
Conflict resilient writer

A write only lands if the Secret is still at the resourceVersion it was read
at. Losing that race never leads to retrying the same values: the caller's
whole read, plan and generate pass is run again so keys another writer filled
in meanwhile are left alone.
"""
import asyncio
import logging
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_random_exponential,
)
from .errors import ConflictRetriesExhausted, WriteConflict

logger = logging.getLogger(__name__)


class ConflictResilientWriter():
    def __init__(self, store, max_attempts=5, backoff_base=0.1, backoff_max=2.0):
        self.store = store
        self.max_attempts = max_attempts
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max

    async def apply(self, ref, resource_version, additions):
        """
        Conditionally add keys to the resource, returns the new resourceVersion

        Raises WriteConflict if the resource moved past `resource_version`.
        The request is shielded, cancelling the caller raises CancelledError
        right away but does not abort a patch already sent to the API server.
        Its result is then not reported, the next pass reads it back.
        """
        new_version = await asyncio.shield(
            self.store.conditional_patch(ref, resource_version, additions))
        logger.debug("Secret %s patched from resourceVersion %s to %s",
            ref, resource_version, new_version)
        return new_version

    async def run(self, attempt):
        """
        Call `attempt` until it finishes without WriteConflict

        Attempts are spaced with capped exponential backoff with full jitter.
        Raises ConflictRetriesExhausted once `max_attempts` attempts lost the
        race, any other exception is passed through untouched.
        """
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_random_exponential(multiplier=self.backoff_base, max=self.backoff_max),
            retry=retry_if_exception_type(WriteConflict),
            before_sleep=before_sleep_log(logger, logging.INFO),
        )
        try:
            async for state in retrying:
                with state:
                    result = await attempt()
        except RetryError as e:
            raise ConflictRetriesExhausted(self.max_attempts) from e.last_attempt.exception()
        return result
