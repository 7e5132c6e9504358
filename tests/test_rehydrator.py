import json

from auction_recovery.resume.models import Player
from auction_recovery.resume.normalizer import normalize_snapshot
from auction_recovery.resume.rehydrator import merge_photos, rehydrate_players

from conftest import scenario_document


def test_scenario_photo_for_second_player_only(photo_store, now) -> None:
    photo_store.save('OLD123', [Player(id=2, name='B', photo='data:image/jpeg;base64,BBB')])
    players = normalize_snapshot(scenario_document(), now=now).snapshot.players

    merged, report = rehydrate_players(players, 'OLD123', photo_store)

    by_name = {p.name: p for p in merged}
    assert by_name['B'].photo == 'data:image/jpeg;base64,BBB'
    assert by_name['A'].photo is None
    assert report.with_photo == 1
    assert report.total_players == 2
    assert report.without_photo == 1
    assert report.restored == 1


def test_existing_photo_is_never_overwritten() -> None:
    players = [
        Player(id=1, name='A', photo='https://cdn.example.com/a.jpg'),
        Player(id=2, name='B'),
    ]
    photo_map = {'1': 'data:stale-a', '2': 'data:b'}

    merged = merge_photos(players, photo_map)

    assert merged[0].photo == 'https://cdn.example.com/a.jpg'
    assert merged[1].photo == 'data:b'


def test_matches_native_and_string_ids() -> None:
    players = [Player(id=1, name='A'), Player(id='2', name='B'), Player(id=3, name='C')]
    photo_map = {1: 'data:a', '2': 'data:b', '3': 'data:c'}

    merged = merge_photos(players, photo_map)

    assert [p.photo for p in merged] == ['data:a', 'data:b', 'data:c']


def test_merge_does_not_mutate_input_players() -> None:
    players = [Player(id=1, name='A')]
    merge_photos(players, {'1': 'data:a'})
    assert players[0].photo is None


def test_no_photos_is_not_an_error(photo_store) -> None:
    players = [Player(id=1, name='A'), Player(id=2, name='B')]

    merged, report = rehydrate_players(players, 'NOPHOTOS', photo_store)

    assert merged == players
    assert report.with_photo == 0
    assert report.restored == 0


def test_rehydration_never_writes_to_the_photo_store(photo_store) -> None:
    photo_store.save('OLD123', [Player(id=1, name='A', photo='data:a')])
    before = sorted(p.name for p in photo_store.store_dir.iterdir())

    rehydrate_players([Player(id=1, name='A')], 'OLD123', photo_store)

    assert sorted(p.name for p in photo_store.store_dir.iterdir()) == before


def test_photo_store_only_saves_players_with_photos(photo_store) -> None:
    written = photo_store.save('A1', [
        Player(id=1, name='A', photo='data:a'),
        Player(id=2, name='B'),
    ])

    assert written == 1
    assert photo_store.load('A1') == {'1': 'data:a'}


def test_photo_store_tolerates_corrupt_documents(photo_store) -> None:
    (photo_store.store_dir / 'BROKEN.json').write_text('{not json', encoding='utf-8')
    (photo_store.store_dir / 'LIST.json').write_text(json.dumps(['x']), encoding='utf-8')

    assert photo_store.load('BROKEN') == {}
    assert photo_store.load('LIST') == {}
    assert photo_store.load('') == {}


def test_photo_store_delete(photo_store) -> None:
    photo_store.save('OLD123', [Player(id=1, name='A', photo='data:a')])

    photo_store.delete('OLD123')
    photo_store.delete('OLD123')

    assert photo_store.load('OLD123') == {}
