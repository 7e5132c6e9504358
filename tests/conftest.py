import copy
from concurrent.futures import Future
from datetime import datetime

import pytest

from auction_recovery.resume.local_cache import LocalCache
from auction_recovery.resume.photo_store import PhotoStore
from auction_recovery.resume.remote_store import RemoteStoreError
from auction_recovery.resume.session_rotation import SessionRotationManager

FIXED_NOW = datetime(2025, 1, 4, 10, 30, 0)


class FakeRemoteStore:
    """In-memory stand-in for the remote realtime store."""

    def __init__(self, documents=None, fail_fetch=False, fail_write=False):
        self.documents = copy.deepcopy(documents or {})
        self.fail_fetch = fail_fetch
        self.fail_write = fail_write
        self.fetches = []
        self.writes = []

    def fetch(self, auction_id):
        self.fetches.append(auction_id)
        if self.fail_fetch:
            raise RemoteStoreError(auction_id, 'fetch', ConnectionError('network down'))
        document = self.documents.get(auction_id)
        return copy.deepcopy(document) if document is not None else None

    def write(self, auction_id, document):
        if self.fail_write:
            raise RemoteStoreError(auction_id, 'write', PermissionError('PERMISSION_DENIED'))
        self.writes.append((auction_id, copy.deepcopy(document)))
        self.documents[auction_id] = copy.deepcopy(document)


class ImmediateExecutor:
    """Runs submitted work inline so detached writes are deterministic in tests."""

    def __init__(self):
        self.submitted = 0

    def submit(self, fn, *args, **kwargs):
        self.submitted += 1
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future

    def shutdown(self, wait=True):
        pass


class SequenceIds:
    """Deterministic id factory."""

    def __init__(self, *ids):
        self.ids = list(ids)

    def __call__(self):
        return self.ids.pop(0)


def scenario_document():
    """Snapshot whose players arrived as an index-keyed mapping."""
    return {
        'auctionId': 'OLD123',
        'tournament': 'Men’s CCL',
        'players': {
            '0': {'id': 1, 'name': 'A', 'category': 'Blue'},
            '1': {'id': 2, 'name': 'B', 'category': 'Red'},
        },
        'teamBalances': [{'name': 'X', 'balance': 500, 'acquired': 1}],
        'auctionLog': [{'playerName': 'A', 'team': 'X', 'amount': 300, 'status': 'Sold'}],
        'round': 2,
        'playerIdx': 1,
    }


@pytest.fixture
def now():
    return FIXED_NOW


@pytest.fixture
def cache(tmp_path):
    return LocalCache(tmp_path / 'cache' / 'local_cache.json')


@pytest.fixture
def photo_store(tmp_path):
    return PhotoStore(tmp_path / 'photos')


@pytest.fixture
def remote():
    return FakeRemoteStore({'OLD123': scenario_document()})


@pytest.fixture
def executor():
    return ImmediateExecutor()


@pytest.fixture
def rotation_manager(cache, photo_store, remote, executor):
    return SessionRotationManager(
        cache=cache,
        photo_store=photo_store,
        remote_store=remote,
        id_factory=SequenceIds('NEW45678', 'NEXT5678', 'LAST5678'),
        executor=executor
    )
