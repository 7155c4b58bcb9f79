import itertools
import random

import pytest

from familygames.errors import NotYourTurnError, RoomFullError, ValidationError, EnrichmentUnavailable
from familygames.services.games import tiles
from familygames.services.games.flavor import FIRST_MELD_FALLBACKS
from familygames.services.games.tiles import COLORS, TILE_UNIVERSE, Tile, TileState
from familygames.services.games.turns import FINISHED, PLAYING, WAITING


def t(color, number, copy=0):
    return TILE_UNIVERSE[copy * 52 + COLORS.index(color) * 13 + number - 1]


WILD_A = TILE_UNIVERSE[104]
WILD_B = TILE_UNIVERSE[105]


def build_state(hand_a, hand_b, threshold=30, opened=(False, False)):
    used = {tile.id for tile in hand_a} | {tile.id for tile in hand_b}
    return TileState(
        pile=[tile for tile in TILE_UNIVERSE if tile.id not in used],
        hands=[list(hand_a), list(hand_b)],
        initial_meld_points=threshold,
        opened=list(opened),
    )


def assert_universe_intact(state):
    ids = state.tile_ids()
    assert sorted(ids) == list(range(tiles.TOTAL_TILES))


# ---- validation ----

def test_universe_has_106_unique_tiles():
    assert len(TILE_UNIVERSE) == 106
    assert len({tile.id for tile in TILE_UNIVERSE}) == 106
    assert sum(1 for tile in TILE_UNIVERSE if tile.is_wild) == 2


def test_valid_run_in_any_order():
    run = [t('red', 4), t('red', 5), t('red', 6), t('red', 7)]
    for perm in itertools.permutations(run):
        assert tiles.validate_group(list(perm))


def test_run_needs_single_color_and_consecutive_values():
    assert not tiles.validate_group([t('red', 4), t('blue', 5), t('red', 6)])
    assert not tiles.validate_group([t('red', 4), t('red', 6), t('red', 7)])
    assert not tiles.validate_group([t('red', 4), t('red', 4, copy=1), t('red', 5)])


def test_wildcard_fills_gap_in_run():
    assert tiles.validate_group([t('green', 5), WILD_A, t('green', 7)])
    assert tiles.validate_group([t('green', 5), t('green', 6), WILD_A])
    # one wildcard cannot cover two missing values
    assert not tiles.validate_group([t('green', 5), WILD_A, t('green', 8)])
    assert tiles.validate_group([t('green', 5), WILD_A, WILD_B, t('green', 8)])


def test_valid_set_in_any_order_and_duplicate_color_breaks_it():
    group = [t('red', 7), t('blue', 7), t('green', 7)]
    for perm in itertools.permutations(group):
        assert tiles.validate_group(list(perm))
    assert not tiles.validate_group(group + [t('red', 7, copy=1)])


def test_set_with_wildcard_and_size_limit():
    assert tiles.validate_group([t('red', 9), t('orange', 9), WILD_A])
    four = [t('red', 9), t('orange', 9), t('blue', 9), t('green', 9)]
    assert tiles.validate_group(four)
    assert not tiles.validate_group(four + [WILD_A])


def test_groups_of_fewer_than_three_or_only_wildcards_are_invalid():
    assert not tiles.validate_group([t('red', 1), t('red', 2)])
    fake_wilds = [Tile(200 + i, None, None, is_wild=True) for i in range(3)]
    assert not tiles.validate_group(fake_wilds)


def test_group_value_counts_wildcards_as_zero():
    assert tiles.group_value([t('red', 9), t('red', 10), WILD_A]) == 19


# ---- dealing ----

def test_new_state_deals_two_hands_and_keeps_every_tile():
    state = tiles.new_tile_state(rng=random.Random(3))
    assert len(state.hands[0]) == 14
    assert len(state.hands[1]) == 14
    assert len(state.pile) == 106 - 28
    assert state.initial_meld_points == 30
    assert_universe_intact(state)


# ---- form group ----

def test_opening_meld_worth_exactly_threshold(make_tile_room):
    hand_a = [t('red', 9), t('red', 10), t('red', 11), t('blue', 2)]
    room = make_tile_room(build_state(hand_a, [t('green', 1)]))

    message = tiles.form_group(room, 'Ana', [tile.id for tile in hand_a[:3]])

    state = room.state
    assert 'Valid group' in message
    assert state.opened == [True, False]
    assert len(state.melds) == 1 and len(state.melds[0]) == 3
    assert [tile.id for tile in state.hands[0]] == [t('blue', 2).id]
    assert state.flavor_text in FIRST_MELD_FALLBACKS
    assert_universe_intact(state)


def test_opening_meld_of_five_six_seven_with_custom_threshold(make_tile_room):
    hand_a = [t('orange', 5), t('orange', 6), t('orange', 7), t('red', 1)]
    room = make_tile_room(build_state(hand_a, [t('green', 1)], threshold=18))
    tiles.form_group(room, 'Ana', [tile.id for tile in hand_a[:3]])
    assert room.state.opened[0] is True
    assert len(room.state.melds) == 1


def test_opening_meld_below_threshold_leaves_state_unchanged(make_tile_room):
    hand_a = [t('red', 1), t('red', 2), t('red', 3), t('blue', 5)]
    room = make_tile_room(build_state(hand_a, [t('green', 1)]))
    before = room.state.to_dict()

    with pytest.raises(ValidationError, match='at least 30'):
        tiles.form_group(room, 'Ana', [tile.id for tile in hand_a[:3]])

    assert room.state.to_dict() == before


def test_later_melds_skip_threshold(make_tile_room):
    hand_a = [t('red', 1), t('red', 2), t('red', 3), t('blue', 5)]
    room = make_tile_room(build_state(hand_a, [t('green', 1)], opened=(True, False)))
    tiles.form_group(room, 'Ana', [tile.id for tile in hand_a[:3]])
    assert len(room.state.melds) == 1


def test_cannot_use_tiles_from_outside_the_hand(make_tile_room):
    hand_a = [t('red', 10), t('red', 11), t('blue', 1)]
    room = make_tile_room(build_state(hand_a, [t('red', 12)]))
    before = room.state.to_dict()
    with pytest.raises(ValidationError, match="don't hold"):
        tiles.form_group(room, 'Ana', [t('red', 10).id, t('red', 11).id, t('red', 12).id])
    assert room.state.to_dict() == before


def test_form_group_rejects_bad_selections(make_tile_room):
    hand_a = [t('red', 10), t('red', 11), t('red', 12)]
    room = make_tile_room(build_state(hand_a, [t('green', 1)]))
    with pytest.raises(ValidationError):
        tiles.form_group(room, 'Ana', [t('red', 10).id, t('red', 11).id])
    with pytest.raises(ValidationError):
        tiles.form_group(room, 'Ana', [t('red', 10).id, t('red', 10).id, t('red', 11).id])
    with pytest.raises(ValidationError):
        tiles.form_group(room, 'Ana', [t('red', 10).id, t('red', 11).id, 999])
    with pytest.raises(ValidationError, match='valid group'):
        tiles.form_group(room, 'Ana', [t('red', 10).id, t('red', 12).id, t('green', 1).id])


def test_emptying_hand_wins_and_scores_opponent_hand(make_tile_room):
    hand_a = [t('red', 10), t('red', 11), t('red', 12)]
    hand_b = [t('blue', 1), t('blue', 2), WILD_A]
    room = make_tile_room(build_state(hand_a, hand_b))

    message = tiles.form_group(room, 'Ana', [tile.id for tile in hand_a])

    assert 'won' in message
    assert room.status == FINISHED
    assert room.state.winner == 'Ana'
    assert room.state.scores == [3, 0]
    assert_universe_intact(room.state)


def test_flavor_text_used_on_opening_and_failure_falls_back(make_tile_room):
    hand_a = [t('red', 10), t('red', 11), t('red', 12), t('blue', 1)]
    room = make_tile_room(build_state(hand_a, [t('green', 1)]))
    tiles.form_group(room, 'Ana', [tile.id for tile in hand_a[:3]], flavor=lambda prompt: 'Bravo Ana!')
    assert room.state.flavor_text == 'Bravo Ana!'

    def broken(prompt):
        raise EnrichmentUnavailable('offline')

    room = make_tile_room(build_state(hand_a, [t('green', 1)]))
    tiles.form_group(room, 'Ana', [tile.id for tile in hand_a[:3]], flavor=broken)
    assert room.state.flavor_text in FIRST_MELD_FALLBACKS


# ---- draw / end turn ----

def test_second_draw_in_same_turn_fails(make_tile_room):
    room = make_tile_room(build_state([t('red', 1)], [t('red', 2)]))
    top = room.state.pile[0]
    tiles.draw_tile(room, 'Ana')
    assert room.state.hands[0][-1] == top
    assert room.state.has_drawn

    with pytest.raises(ValidationError, match='already drew'):
        tiles.draw_tile(room, 'Ana')
    assert len(room.state.hands[0]) == 2
    assert_universe_intact(room.state)


def test_draw_from_empty_pile_fails(make_tile_room):
    state = build_state([t('red', 1)], [t('red', 2)])
    state.hands[1].extend(state.pile)
    state.pile = []
    room = make_tile_room(state)
    with pytest.raises(ValidationError, match='no more tiles'):
        tiles.draw_tile(room, 'Ana')
    assert room.state.has_drawn is False


def test_end_turn_swaps_player_and_resets_draw(make_tile_room):
    room = make_tile_room(build_state([t('red', 1)], [t('red', 2)]))
    tiles.draw_tile(room, 'Ana')
    tiles.end_turn(room, 'Ana')
    assert room.current_player == 'Beto'
    assert room.state.has_drawn is False
    tiles.draw_tile(room, 'Beto')
    tiles.end_turn(room, 'Beto')
    assert room.current_player == 'Ana'


# ---- turn control through apply_move ----

def test_apply_move_enforces_turn_and_status(make_tile_room):
    room = make_tile_room(build_state([t('red', 1)], [t('red', 2)]))
    with pytest.raises(NotYourTurnError):
        tiles.apply_move(room, 'Beto', 'draw_tile')
    with pytest.raises(ValidationError, match='not a player'):
        tiles.apply_move(room, 'Zoe', 'draw_tile')
    with pytest.raises(ValidationError, match='Invalid move type'):
        tiles.apply_move(room, 'Ana', 'shuffle_table')

    waiting = make_tile_room(build_state([t('red', 1)], [t('red', 2)]), players=['Ana'])
    assert waiting.status == WAITING
    with pytest.raises(ValidationError, match='Waiting'):
        tiles.apply_move(waiting, 'Ana', 'draw_tile')

    room.status = FINISHED
    with pytest.raises(ValidationError, match='over'):
        tiles.apply_move(room, 'Ana', 'draw_tile')


def test_universe_preserved_across_a_sequence_of_moves(make_tile_room):
    state = tiles.new_tile_state(rng=random.Random(11))
    room = make_tile_room(state)
    for _ in range(10):
        player = room.current_player
        tiles.apply_move(room, player, 'draw_tile')
        assert_universe_intact(room.state)
        tiles.apply_move(room, player, 'end_turn')
    assert len(room.state.pile) == 78 - 10


# ---- join ----

def test_join_fills_second_seat_and_starts(make_tile_room):
    room = make_tile_room(build_state([t('red', 1)], [t('red', 2)]), players=['Ana'])
    with pytest.raises(ValidationError, match='already'):
        tiles.join(room, 'Ana')
    tiles.join(room, 'Beto')
    assert room.players == ['Ana', 'Beto']
    assert room.status == PLAYING
    with pytest.raises(RoomFullError):
        tiles.join(room, 'Carla')


def test_player_view_only_shows_own_hand(make_tile_room):
    room = make_tile_room(build_state([t('red', 1)], [t('red', 2), t('red', 3)]))
    view = tiles.player_view(room, 'Beto')
    assert [tile['id'] for tile in view['your_hand']] == [t('red', 2).id, t('red', 3).id]
    assert view['hand_counts'] == {'Ana': 1, 'Beto': 2}
    assert 'your_hand' not in tiles.player_view(room, 'Zoe')


def test_tile_ids_must_be_real_integers():
    assert tiles.tile_by_id(5) == TILE_UNIVERSE[5]
    for bad in (1.7, True, '5', None, -1, 106):
        with pytest.raises(ValidationError, match='Unknown tile'):
            tiles.tile_by_id(bad)


def test_form_group_rejects_non_list_tile_ids(make_tile_room):
    hand_a = [t('red', 1), t('red', 2), t('red', 3)]
    room = make_tile_room(build_state(hand_a, [t('green', 1)], opened=(True, False)))
    with pytest.raises(ValidationError, match='tile_ids'):
        tiles.apply_move(room, 'Ana', 'form_group', {'tile_ids': '123'})
    with pytest.raises(ValidationError, match='move_data'):
        tiles.apply_move(room, 'Ana', 'form_group', [1, 2, 3])
    assert room.state.hands[0] == hand_a
