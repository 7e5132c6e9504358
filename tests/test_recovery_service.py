import pytest

from auction_recovery.resume import recovery_service
from auction_recovery.resume.models import Player
from auction_recovery.resume.recovery_service import (
    AuctionRecoveryService,
    NoRecoverableAuctionError,
)
from auction_recovery.resume.session_rotation import SessionContext

from conftest import FakeRemoteStore, scenario_document


@pytest.fixture
def service(remote, cache, photo_store, rotation_manager):
    return AuctionRecoveryService(
        remote_store=remote,
        cache=cache,
        photo_store=photo_store,
        rotation_manager=rotation_manager
    )


def test_end_to_end_resume(service, remote, cache, photo_store, now) -> None:
    photo_store.save('OLD123', [Player(id=2, name='B', photo='data:image/jpeg;base64,BBB')])
    cache.set('auction_OLD123', {'auctionLog': [{'playerName': 'stale'}]})
    cache.set_current_auction_id('OLD123')

    outcome = service.resume('OLD123', now=now)
    setup = outcome.setup

    assert setup.auctionId == 'NEW45678'
    assert setup.auctionId != 'OLD123'
    assert setup.bidLog == []
    assert [p['name'] for p in setup.players] == ['A', 'B']
    assert setup.players[1]['photo'] == 'data:image/jpeg;base64,BBB'
    assert 'photo' not in setup.players[0]
    assert setup.resumeData.sequence == ['A', 'B']
    assert setup.resumeData.balances['X'].balance == 500
    assert setup.resumeData.round == 2
    assert setup.resumeData.playerIdx == 1
    assert setup.resumeData.log[0].attempt == 1

    assert outcome.previous_auction_id == 'OLD123'
    assert outcome.context.current_auction_id == 'NEW45678'
    assert outcome.source == 'remote'
    assert outcome.photo_report.with_photo == 1
    assert outcome.copy_forward.done()

    assert cache.current_auction_id == 'NEW45678'
    assert 'auction_OLD123' not in cache.keys()
    assert remote.writes[-1][0] == 'NEW45678'
    assert remote.writes[-1][1]['resumedFrom'] == 'OLD123'
    assert photo_store.load('NEW45678') == {'2': 'data:image/jpeg;base64,BBB'}


def test_missing_auction_raises_before_any_state_is_built(cache, photo_store, rotation_manager, monkeypatch) -> None:
    def fail(snapshot):
        raise AssertionError('resume state must not be built')

    monkeypatch.setattr(recovery_service, 'build_resume_state', fail)
    service = AuctionRecoveryService(FakeRemoteStore(), cache, photo_store, rotation_manager)
    cache.set_current_auction_id('KEEP01')

    with pytest.raises(NoRecoverableAuctionError) as excinfo:
        service.resume('GONE99')

    assert excinfo.value.auction_id == 'GONE99'
    assert cache.current_auction_id == 'KEEP01'


def test_remote_failure_falls_back_to_local_copy(cache, photo_store, rotation_manager, now) -> None:
    service = AuctionRecoveryService(FakeRemoteStore(fail_fetch=True), cache, photo_store, rotation_manager)
    cache.save_auction_state('OLD123', scenario_document())

    outcome = service.resume('OLD123', now=now)

    assert outcome.source == 'local'
    assert outcome.setup.resumeData.sequence == ['A', 'B']
    assert outcome.setup.auctionId == 'NEW45678'


def test_remote_null_falls_back_to_local_copy(cache, photo_store, rotation_manager) -> None:
    service = AuctionRecoveryService(FakeRemoteStore(), cache, photo_store, rotation_manager)
    cache.save_auction_state('OLD123', scenario_document())

    document, source = service.fetch_snapshot('OLD123')

    assert source == 'local'
    assert document['auctionId'] == 'OLD123'


def test_cache_is_purged_before_normalized_output_is_used(service, cache, monkeypatch, now) -> None:
    cache.set('auction_OLD123', {'auctionLog': []})
    cache.set('auction_setup_OLD123', {'tournament': 'stale'})
    seen_keys = []
    normalize = recovery_service.normalize_snapshot

    def spy(document, now=None):
        seen_keys.append(sorted(cache.keys()))
        return normalize(document, now=now)

    monkeypatch.setattr(recovery_service, 'normalize_snapshot', spy)

    service.resume('OLD123', now=now)

    assert seen_keys == [[]]


def test_old_id_falls_back_to_requested_id(remote, service, now) -> None:
    document = scenario_document()
    del document['auctionId']
    remote.documents['NOID01'] = document

    outcome = service.resume('NOID01', now=now)

    assert outcome.previous_auction_id == 'NOID01'
    assert remote.writes[-1][1]['resumedFrom'] == 'NOID01'


@pytest.mark.regression
def test_failed_copy_forward_does_not_fail_resume(cache, photo_store, rotation_manager, now) -> None:
    remote = FakeRemoteStore({'OLD123': scenario_document()}, fail_write=True)
    rotation_manager.remote_store = remote
    service = AuctionRecoveryService(remote, cache, photo_store, rotation_manager)

    outcome = service.resume('OLD123', now=now)

    assert outcome.setup.auctionId == 'NEW45678'
    assert outcome.copy_forward.exception() is not None
    assert cache.current_auction_id == 'NEW45678'


def test_corrupt_remote_document_still_resumes(remote, service, now) -> None:
    remote.documents['BAD001'] = {'players': 'oops', 'round': 'x', 'auctionLog': {'0': None, '1': 'junk'}}

    outcome = service.resume('BAD001', now=now)

    assert outcome.setup.resumeData.round == 1
    assert len(outcome.setup.resumeData.log) == 1
    assert 'players' in outcome.defaulted


def test_list_recent_auctions_newest_first(service, cache) -> None:
    cache.set('auction_AAA111', {
        'auctionLog': [{'status': 'Sold'}, {'status': 'Unsold'}, {'status': 'Sold'}],
        'round': 2, 'timestamp': 1000,
    })
    cache.set('auction_BBB222', {
        'auctionLog': {'0': {'status': 'Sold'}},
        'timestamp': 3000,
    })
    cache.set('auction_CCC333', {'auctionLog': [], 'timestamp': 5000})
    cache.set('auction_setup_AAA111', {'auctionLog': [{'status': 'Sold'}], 'timestamp': 9000})

    recent = service.list_recent_auctions()

    assert [a.id for a in recent] == ['BBB222', 'AAA111']
    assert recent[0].playersSold == 1
    assert recent[0].round == 1
    assert recent[1].playersSold == 2
    assert recent[1].round == 2


def test_list_recent_auctions_respects_limit(service, cache) -> None:
    for i in range(5):
        cache.set(f"auction_A{i}", {'auctionLog': [{'status': 'Sold'}], 'timestamp': i})

    assert [a.id for a in service.list_recent_auctions(limit=2)] == ['A4', 'A3']


def test_start_new_auction(service, cache) -> None:
    context = service.start_new_auction(SessionContext(current_auction_id='OLD123'))

    assert context.current_auction_id != 'OLD123'
    assert len(context.current_auction_id) == 6
    assert cache.current_auction_id == context.current_auction_id


@pytest.mark.regression
def test_malformed_player_keys_and_ids_still_resume(remote, service, photo_store, now) -> None:
    photo_store.save('OLD123', [Player(id=2, name='B', photo='data:image/jpeg;base64,BBB')])
    document = scenario_document()
    document['players'] = {
        '0': {'id': {'k': 1}, 'name': 'A'},
        '1': {'id': 2, 'name': 'B'},
        '²': {'id': [3], 'name': 'C'},
    }
    remote.documents['OLD123'] = document

    outcome = service.resume('OLD123', now=now)

    assert outcome.setup.resumeData.sequence == ['A', 'B', 'C']
    assert [p['id'] for p in outcome.setup.players] == ['A', 2, 'C']
    assert outcome.photo_report.with_photo == 1
    assert 'players[0].id' in outcome.defaulted


def test_optional_setup_limits_parse_numeric_strings(remote, service, now) -> None:
    document = scenario_document()
    document.update({'minPlayersPerTeam': '11', 'maxPlayersPerTeam': float('nan'), 'blueCapPercent': '40'})
    remote.documents['OLD123'] = document

    setup = service.resume('OLD123', now=now).setup

    assert setup.minPlayersPerTeam == 11
    assert setup.maxPlayersPerTeam is None
    assert setup.blueCapPercent == 40.0
