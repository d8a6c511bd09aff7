"""
Single reconciliation pass for one Secret

Every pass starts from a fresh read of the Secret, nothing generated earlier
is remembered between passes. The data stored in the cluster is the only
record of what was already generated.
"""
import logging
from .annotation import parse
from .errors import (
    ConflictRetriesExhausted,
    GeneratorError,
    ParseError,
    ResourceGone,
    StoreUnavailable,
)
from .outcome import Failed, NoOp, Patched, Skipped
from .planner import plan
from .store import GENERATION_ANNOTATION

logger = logging.getLogger(__name__)


class Reconciler():
    def __init__(self, store, registry, writer, annotation=GENERATION_ANNOTATION):
        self.store = store
        self.registry = registry
        self.writer = writer
        self.annotation = annotation

    async def reconcile(self, ref):
        """
        Bring the Secret in line with its generation annotation, returns the outcome

        Lost write races rerun the whole pass, errors scoped to this Secret are
        turned into outcomes instead of being raised.
        """
        try:
            return await self.writer.run(lambda: self.attempt(ref))
        except ResourceGone as e:
            return Skipped(str(e))
        except (ParseError, GeneratorError, ConflictRetriesExhausted) as e:
            return Failed(str(e))
        except StoreUnavailable as e:
            return Failed(str(e), requeue=True)

    async def attempt(self, ref):
        """
        Fetch, parse, plan, generate and apply once

        Raises WriteConflict if the Secret changed after it was read,
        nothing is written when parsing or any generator fails.
        """
        resource = await self.store.get(ref)

        text = resource.annotations.get(self.annotation, "")
        if not text.strip():
            return Skipped("no %s annotation" % self.annotation)

        spec = parse(text, self.registry)
        planned = plan(resource.data.keys(), spec)
        if not planned:
            return NoOp()

        additions = self.registry.generate_all(planned)
        logger.debug("Secret %s at resourceVersion %s is missing %s",
            ref, resource.resource_version, ", ".join(additions))
        await self.writer.apply(ref, resource.resource_version, additions)
        return Patched([entry.key for entry in planned])
