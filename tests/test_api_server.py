import pytest
from fastapi.testclient import TestClient

from auction_recovery.resume.api_server import app, get_recovery_service
from auction_recovery.resume.recovery_service import AuctionRecoveryService


@pytest.fixture
def client(remote, cache, photo_store, rotation_manager):
    service = AuctionRecoveryService(remote, cache, photo_store, rotation_manager)
    app.dependency_overrides[get_recovery_service] = lambda: service
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_resume_returns_setup_on_new_id(client, cache) -> None:
    response = client.post('/auctions/OLD123/resume')

    assert response.status_code == 200
    body = response.json()
    assert body['setup']['auctionId'] == 'NEW45678'
    assert body['setup']['bidLog'] == []
    assert body['setup']['resumeData']['sequence'] == ['A', 'B']
    assert body['previousAuctionId'] == 'OLD123'
    assert body['totalPlayers'] == 2
    assert 'auctionLog[0].attempt' in body['defaulted']
    assert cache.current_auction_id == 'NEW45678'


def test_resume_unknown_auction_is_404(client) -> None:
    response = client.post('/auctions/MISSING/resume')

    assert response.status_code == 404
    assert 'Start a new auction instead' in response.json()['detail']


def test_recent_auctions(client, cache) -> None:
    cache.set('auction_AAA111', {'auctionLog': [{'status': 'Sold'}], 'round': 3, 'timestamp': 10})

    response = client.get('/auctions/recent')

    assert response.status_code == 200
    assert response.json() == [
        {'id': 'AAA111', 'round': 3, 'playersSold': 1, 'timestamp': 10, 'status': 'In Progress'}
    ]


def test_purge_keeps_session_pointer(client, cache) -> None:
    cache.set('auction_AAA111', {'auctionLog': []})
    cache.set_current_auction_id('AAA111')

    response = client.post('/cache/purge')

    assert response.json() == {'cleared': 1}
    assert client.get('/session/current').json() == {'auctionId': 'AAA111'}


def test_new_auction_becomes_current(client) -> None:
    created = client.post('/auctions/new').json()['auctionId']

    assert len(created) == 6
    assert client.get('/session/current').json() == {'auctionId': created}
