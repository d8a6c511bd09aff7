"""Shared fakes standing in for the Kubernetes API."""

import asyncio
from base64 import b64encode

import pytest

from autosecret.errors import ResourceGone, WriteConflict
from autosecret.generators import build_registry
from autosecret.store import GENERATION_ANNOTATION, ManagedResource, ResourceRef


def b64(text):
    return b64encode(text.encode("utf-8")).decode("ascii")


class FakeStore:
    """In-memory Secret store with resourceVersion preconditions.

    Hooks queued in ``before_patch`` run right before the next conditional
    patch is checked, which is how tests play a concurrent writer.
    """

    def __init__(self):
        self.secrets = {}
        self.versions = {}
        self.patches = []
        self.before_patch = []

    def put(self, ref, annotations=None, data=None):
        self.secrets[ref] = {
            "annotations": dict(annotations or {}),
            "data": dict(data or {}),
        }
        self.bump(ref)

    def annotate(self, ref, text, data=None):
        self.put(ref, {GENERATION_ANNOTATION: text}, data)

    def bump(self, ref):
        self.versions[ref] = self.versions.get(ref, 0) + 1

    def data(self, ref):
        return self.secrets[ref]["data"]

    async def get(self, ref):
        await asyncio.sleep(0)
        if ref not in self.secrets:
            raise ResourceGone("Secret %s not found" % str(ref))
        secret = self.secrets[ref]
        return ManagedResource(ref, str(self.versions[ref]), secret["annotations"], dict(secret["data"]))

    async def conditional_patch(self, ref, expected_version, additions):
        if self.before_patch:
            self.before_patch.pop(0)(self)
        if str(self.versions[ref]) != expected_version:
            raise WriteConflict("Secret %s changed" % str(ref))
        for key, value in additions.items():
            self.secrets[ref]["data"][key] = b64encode(value).decode("ascii")
        self.bump(ref)
        self.patches.append((ref, sorted(additions)))
        return str(self.versions[ref])


@pytest.fixture
def ref():
    return ResourceRef("default", "app-credentials")


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def registry():
    return build_registry()
