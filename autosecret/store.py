"""
Secret store backed by the Kubernetes API
"""
import asyncio
import aiohttp
from base64 import b64encode
from collections import namedtuple
from kubernetes_asyncio import client
from kubernetes_asyncio.client.exceptions import ApiException
from .errors import ResourceGone, StoreUnavailable, WriteConflict

FIELD_MANAGER = "auto-secret.k8s.eboland.de"
GENERATION_ANNOTATION = "%s/gen" % FIELD_MANAGER

TRANSPORT_ERRORS = (aiohttp.ClientError, asyncio.TimeoutError)


class ResourceRef(namedtuple("ResourceRef", ("namespace", "name"))):
    def __str__(self):
        return "%s/%s" % (self.namespace, self.name)


class ManagedResource():
    """
    Transient copy of a Secret as read from the cluster

    Values in `data` are kept exactly as the API returned them (base64 text)
    and are never decoded, only the set of keys matters to the controller.
    """

    def __init__(self, ref, resource_version, annotations=None, data=None):
        self.ref = ref
        self.resource_version = resource_version
        self.annotations = dict(annotations or {})
        self.data = dict(data or {})

    @classmethod
    def from_secret(cls, secret):
        metadata = secret.metadata
        return cls(
            ResourceRef(metadata.namespace, metadata.name),
            metadata.resource_version,
            metadata.annotations,
            secret.data)

    def __repr__(self):
        return "ManagedResource(ref=%s, resource_version=%s, keys=%s)" % (
            repr(str(self.ref)), repr(self.resource_version), sorted(self.data))


class SecretStore():
    """
    Read Secrets and patch them conditionally on their resourceVersion
    """

    def __init__(self, api_client, dry_run=False):
        self.v1 = client.CoreV1Api(api_client)
        self.dry_run = dry_run

    async def get(self, ref):
        try:
            secret = await self.v1.read_namespaced_secret(ref.name, ref.namespace)
        except ApiException as e:
            if e.status == 404:
                raise ResourceGone("Secret %s not found" % ref)
            raise StoreUnavailable("Reading secret %s failed: %s %s" % (ref, e.status, e.reason)) from e
        except TRANSPORT_ERRORS as e:
            raise StoreUnavailable("Reading secret %s failed: %s" % (ref, e.__class__.__name__)) from e
        return ManagedResource.from_secret(secret)

    async def conditional_patch(self, ref, expected_version, additions):
        """
        Add `additions` to the Secret data unless it changed since `expected_version`

        Carrying resourceVersion in the patch body makes the API server reject
        the write with 409 Conflict if anyone else updated the Secret meanwhile.
        Returns the new resourceVersion.
        """
        body = {
            "metadata": {
                "resourceVersion": expected_version,
            },
            "data": dict([(key, b64encode(value).decode("ascii")) for key, value in additions.items()]),
        }
        kwargs = {"field_manager": FIELD_MANAGER}
        if self.dry_run:
            kwargs["dry_run"] = "All"
        try:
            secret = await self.v1.patch_namespaced_secret(ref.name, ref.namespace, body, **kwargs)
        except ApiException as e:
            if e.status == 409:
                raise WriteConflict("Secret %s changed since resourceVersion %s" % (ref, expected_version))
            if e.status == 404:
                raise ResourceGone("Secret %s was deleted" % ref)
            raise StoreUnavailable("Patching secret %s failed: %s %s" % (ref, e.status, e.reason)) from e
        except TRANSPORT_ERRORS as e:
            raise StoreUnavailable("Patching secret %s failed: %s" % (ref, e.__class__.__name__)) from e
        return secret.metadata.resource_version
