"""
Event source for annotated Secrets

Secrets are listed once and then watched from the listing's resourceVersion.
The watch is closed by the API server after the resync interval, which
triggers a fresh listing; every annotated Secret of a listing is reported as
resynced so it gets reconciled again even if no event was missed.
"""
import asyncio
import logging
from kubernetes_asyncio import client, watch
from kubernetes_asyncio.client.exceptions import ApiException
from .store import GENERATION_ANNOTATION, TRANSPORT_ERRORS, ResourceRef

logger = logging.getLogger(__name__)

ADDED = "Added"
MODIFIED = "Modified"
DELETED = "Deleted"
RESYNCED = "Resynced"

EVENT_KINDS = {
    "ADDED": ADDED,
    "MODIFIED": MODIFIED,
    "DELETED": DELETED,
}


class WatchEvent():
    def __init__(self, ref, kind):
        self.ref = ref
        self.kind = kind

    def __eq__(self, other):
        return isinstance(other, WatchEvent) and (self.ref, self.kind) == (other.ref, other.kind)

    def __repr__(self):
        return "WatchEvent(ref=%s, kind=%s)" % (repr(str(self.ref)), self.kind)


def is_annotated(secret, annotation=GENERATION_ANNOTATION):
    annotations = secret.metadata.annotations or {}
    return bool(annotations.get(annotation, "").strip())


class SecretWatcher():
    def __init__(self, api_client, namespace=None, resync_interval=300, retry_interval=5,
                 annotation=GENERATION_ANNOTATION):
        self.v1 = client.CoreV1Api(api_client)
        self.namespace = namespace
        self.resync_interval = resync_interval
        self.retry_interval = retry_interval
        self.annotation = annotation

    def get_list_call(self):
        """
        Return list function and its positional arguments for the watched scope
        """
        if self.namespace:
            return self.v1.list_namespaced_secret, (self.namespace,)
        return self.v1.list_secret_for_all_namespaces, ()

    def to_event(self, kind, secret):
        """
        Build WatchEvent for annotated Secret, None for everything else
        """
        if not is_annotated(secret, self.annotation):
            return None
        return WatchEvent(ResourceRef(secret.metadata.namespace, secret.metadata.name), kind)

    async def events(self):
        """
        Yield WatchEvents forever, relisting after every watch expiry or failure
        """
        func, args = self.get_list_call()
        while True:
            try:
                listing = await func(*args)
            except (ApiException,) + TRANSPORT_ERRORS as e:
                logger.warning("Listing secrets failed, retrying in %ds: %s", self.retry_interval, e)
                await asyncio.sleep(self.retry_interval)
                continue

            resource_version = listing.metadata.resource_version
            logger.debug("Listed %d secrets at resourceVersion %s", len(listing.items), resource_version)
            for secret in listing.items:
                event = self.to_event(RESYNCED, secret)
                if event:
                    yield event

            async for event in self.watch(func, args, resource_version):
                yield event

    async def watch(self, func, args, resource_version):
        w = watch.Watch()
        try:
            async for event in w.stream(func, *args,
                                        resource_version=resource_version,
                                        timeout_seconds=self.resync_interval):
                kind = EVENT_KINDS.get(event["type"])
                if kind is None:
                    continue
                event = self.to_event(kind, event["object"])
                if event:
                    yield event
        except ApiException as e:
            if e.status == 410:
                logger.info("Watch resourceVersion %s expired, relisting", resource_version)
            else:
                logger.warning("Watching secrets failed, relisting: %s %s", e.status, e.reason)
                await asyncio.sleep(self.retry_interval)
        except TRANSPORT_ERRORS as e:
            logger.warning("Watch connection lost, relisting: %s", e.__class__.__name__)
            await asyncio.sleep(self.retry_interval)
        finally:
            w.stop()
