"""
Reconciliation outcomes and the sink they are reported to
"""
import logging
from collections import Counter

logger = logging.getLogger(__name__)


class ReconcileOutcome():
    STATE = None

    def get_props(self):
        return []

    def __eq__(self, other):
        return type(self) is type(other) and self.get_props() == other.get_props()

    def __repr__(self):
        return "%s(%s)" % (self.__class__.__name__, ", ".join(["%s=%s" % (k, repr(v)) for k, v in self.get_props()]))


class NoOp(ReconcileOutcome):
    STATE = "NoOp"


class Patched(ReconcileOutcome):
    STATE = "Patched"

    def __init__(self, keys):
        self.keys = list(keys)

    def get_props(self):
        return [("keys", self.keys)]


class Skipped(ReconcileOutcome):
    STATE = "Skipped"

    def __init__(self, reason):
        self.reason = reason

    def get_props(self):
        return [("reason", self.reason)]


class Failed(ReconcileOutcome):
    """
    Reconciliation failed

    `requeue` is set for failures that go away by themselves (cluster API
    unavailable) and asks for a retry with backoff. Other failures wait for
    the next change or resync of the resource.
    """
    STATE = "Failed"

    def __init__(self, reason, requeue=False):
        self.reason = reason
        self.requeue = requeue

    def get_props(self):
        return [("reason", self.reason), ("requeue", self.requeue)]


class LoggingSink():
    """
    Log outcomes and count them per state
    """

    def __init__(self):
        self.counts = Counter()

    def report(self, ref, outcome):
        self.counts[outcome.STATE] += 1
        if isinstance(outcome, Patched):
            logger.info("Secret %s: generated %s", ref, ", ".join(outcome.keys))
        elif isinstance(outcome, Failed):
            logger.warning("Secret %s: %s", ref, outcome.reason)
        else:
            logger.debug("Secret %s: %s", ref, outcome)
