"""
Letter-wheel game engine.

A fixed roster of three players takes turns spinning, guessing consonants,
buying vowels and solving the phrase. Every branch that loses the turn goes
through `get_next_player`.
"""
import logging
import random
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from familygames.errors import ValidationError
from .flavor import FlavorText, generate_phrase
from .turns import COMPLETED, PLAYING, Room, ensure_can_move

logger = logging.getLogger(__name__)

LOSE_HALF = 'LOSE_HALF'
LOSE_TURN = 'LOSE_TURN'

WHEEL_VALUES: List[Union[int, str]] = [
    500, 800, 1000, 1500, 2000, 2500,
    LOSE_HALF, LOSE_TURN,
    500, 1000, 1500, 2000,
]

VOWELS = frozenset('AEIOU')
VOWEL_COST = 250

PHRASES: Dict[str, List[str]] = {
    'NBA BASKETBALL': [
        'LEBRON JAMES LOS ANGELES LAKERS',
        'STEPHEN CURRY GOLDEN STATE',
        'NIKOLA JOKIC DENVER NUGGETS',
    ],
    'TRAVELING IN SPAIN': [
        'LA SAGRADA FAMILIA BARCELONA',
        'THE PRADO MUSEUM IN MADRID',
        'THE ALHAMBRA OF GRANADA',
    ],
    'MR BEAST': [
        'MR BEAST GIVES AWAY MONEY',
        'FEASTABLES CHOCOLATE BAR',
        'LAST TO LEAVE THE CIRCLE WINS',
    ],
    'MARVEL MOVIES': [
        'SPIDERMAN NO WAY HOME',
        'AVENGERS ENDGAME THANOS',
        'GUARDIANS OF THE GALAXY',
    ],
    'DC COMICS': [
        'THE BATMAN ROBERT PATTINSON',
        'JOKER ARTHUR FLECK',
        'JUSTICE LEAGUE SNYDER CUT',
    ],
}


@dataclass
class WheelState:
    phrase: str
    category: str
    money: Dict[str, int]
    revealed: List[str] = field(default_factory=list)
    consonants_used: List[str] = field(default_factory=list)
    vowels_used: List[str] = field(default_factory=list)
    # Numeric spin awaiting its consonant guess
    pending_value: Optional[int] = None
    last_spin: Optional[Union[int, str]] = None
    winner: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'phrase': self.phrase,
            'category': self.category,
            'money': dict(self.money),
            'revealed': list(self.revealed),
            'consonants_used': list(self.consonants_used),
            'vowels_used': list(self.vowels_used),
            'pending_value': self.pending_value,
            'last_spin': self.last_spin,
            'winner': self.winner,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'WheelState':
        return cls(
            phrase=data['phrase'],
            category=data['category'],
            money={k: int(v) for k, v in (data.get('money') or {}).items()},
            revealed=list(data.get('revealed') or []),
            consonants_used=list(data.get('consonants_used') or []),
            vowels_used=list(data.get('vowels_used') or []),
            pending_value=data.get('pending_value'),
            last_spin=data.get('last_spin'),
            winner=data.get('winner'),
        )


# ---- Phrase helpers ----

def normalize_phrase(text: str) -> str:
    return re.sub(r'\s+', ' ', (text or '').strip()).upper()


def phrase_letters(phrase: str) -> set:
    return {ch for ch in phrase.upper() if ch.isalpha()}


def count_letter(phrase: str, letter: str) -> int:
    return phrase.upper().count(letter)


def is_phrase_complete(phrase: str, revealed) -> bool:
    return phrase_letters(phrase) <= set(revealed)


def display_phrase(phrase: str, revealed) -> str:
    """Masked phrase, one slot per character; hidden letters show as `_`."""
    shown = set(revealed)
    return ' '.join(ch if (not ch.isalpha() or ch in shown) else '_' for ch in phrase)


def normalize_letter(letter) -> str:
    value = (letter or '').strip().upper() if isinstance(letter, str) else ''
    if len(value) != 1 or not value.isalpha():
        raise ValidationError('Pick a single letter')
    return value


def choose_phrase(category: Optional[str] = None, flavor: Optional[FlavorText] = None,
                  rng=random) -> Tuple[str, str]:
    """Pick (phrase, category): generated text when usable, else the catalog."""
    if category:
        category = category.strip().upper()
        if category not in PHRASES:
            raise ValidationError(f'Unknown category: {category}')
    else:
        category = rng.choice(sorted(PHRASES))
    phrase = generate_phrase(flavor, category)
    if phrase is None:
        phrase = rng.choice(PHRASES[category])
    return normalize_phrase(phrase), category


def new_wheel_state(players: List[str], category: str, phrase: str) -> WheelState:
    return WheelState(phrase=normalize_phrase(phrase), category=category,
                      money={name: 0 for name in players})


# ---- Turn rotation ----

def get_next_player(game: Room, current: str) -> str:
    return game.roster.next_after(current)


def _pass_turn(game: Room) -> None:
    game.current_player = get_next_player(game, game.current_player)
    game.state.pending_value = None


def _complete(game: Room, player: str) -> None:
    state: WheelState = game.state
    state.winner = player
    state.pending_value = None
    game.status = COMPLETED
    logger.info("[complete] game=%s winner=%s money=%s", game.code, player, state.money.get(player))


# ---- Moves ----

def spin(rng=random) -> Union[int, str]:
    """Uniform pick from the reward table."""
    return rng.choice(WHEEL_VALUES)


def apply_spin(game: Room, player: str, rng=random) -> Tuple[str, Union[int, str]]:
    state: WheelState = game.state
    if state.pending_value is not None:
        raise ValidationError('Guess a consonant for your current spin first')
    value = spin(rng)
    state.last_spin = value
    if value == LOSE_HALF:
        state.money[player] = state.money.get(player, 0) // 2
        _pass_turn(game)
        return f'{player} spun LOSE HALF and now has {state.money[player]}. Next: {game.current_player}', value
    if value == LOSE_TURN:
        _pass_turn(game)
        return f'{player} spun LOSE A TURN. Next: {game.current_player}', value
    state.pending_value = value
    return f'{player} spun {value}', value


def guess_consonant(game: Room, player: str, letter, value: int) -> str:
    state: WheelState = game.state
    letter = normalize_letter(letter)
    if letter in VOWELS:
        raise ValidationError(f'{letter} is a vowel; buy it instead')
    if letter in state.consonants_used:
        raise ValidationError(f'{letter} was already used')

    state.consonants_used.append(letter)
    state.pending_value = None
    count = count_letter(state.phrase, letter)
    if not count:
        _pass_turn(game)
        return f'There is no {letter}. Next: {game.current_player}'

    state.revealed.append(letter)
    earned = value * count
    state.money[player] = state.money.get(player, 0) + earned
    if is_phrase_complete(state.phrase, state.revealed):
        _complete(game, player)
        return f'{player} found {count} {letter} (+{earned}) and completed the phrase!'
    return f'{player} found {count} {letter} (+{earned})'


def buy_vowel(game: Room, player: str, letter) -> str:
    state: WheelState = game.state
    letter = normalize_letter(letter)
    if letter not in VOWELS:
        raise ValidationError(f'{letter} is not a vowel')
    if letter in state.vowels_used:
        raise ValidationError(f'{letter} was already bought')
    if state.money.get(player, 0) < VOWEL_COST:
        raise ValidationError(f'You need at least {VOWEL_COST} to buy a vowel')

    # The cost pays for the attempt, hit or miss
    state.money[player] -= VOWEL_COST
    state.vowels_used.append(letter)
    count = count_letter(state.phrase, letter)
    if not count:
        _pass_turn(game)
        return f'There is no {letter}. Next: {game.current_player}'

    state.revealed.append(letter)
    if is_phrase_complete(state.phrase, state.revealed):
        _complete(game, player)
        return f'{player} bought {letter} and completed the phrase!'
    return f'{player} bought {letter} ({count} found)'


def solve_phrase(game: Room, player: str, attempt) -> str:
    state: WheelState = game.state
    guess = normalize_phrase(attempt if isinstance(attempt, str) else '')
    if not guess:
        raise ValidationError('Type your solution')
    if guess != normalize_phrase(state.phrase):
        _pass_turn(game)
        return f'{player} guessed wrong. Next: {game.current_player}'
    for ch in state.phrase:
        if ch.isalpha() and ch not in state.revealed:
            state.revealed.append(ch)
    _complete(game, player)
    return f'{player} solved the phrase!'


WHEEL_MOVES = ('spin', 'guess_consonant', 'buy_vowel', 'solve')


def apply_move(game: Room, player: str, action: str, data: Optional[Dict[str, Any]] = None,
               rng=random) -> Tuple[str, Dict[str, Any]]:
    """Validate turn ownership, then dispatch one action.

    Returns the outcome message and extra response fields (the spin value).
    """
    ensure_can_move(game, player)
    state: WheelState = game.state
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValidationError('data must be an object')
    if action == 'spin':
        message, value = apply_spin(game, player, rng=rng)
        return message, {'wheel_value': value}
    if action == 'guess_consonant':
        if state.pending_value is None:
            raise ValidationError('Spin the wheel first')
        return guess_consonant(game, player, data.get('letter'), state.pending_value), {}
    if state.pending_value is not None:
        raise ValidationError('Guess a consonant for your current spin first')
    if action == 'buy_vowel':
        return buy_vowel(game, player, data.get('letter')), {}
    if action == 'solve':
        return solve_phrase(game, player, data.get('attempt')), {}
    raise ValidationError(f'Invalid action: {action}. Expected one of: {", ".join(WHEEL_MOVES)}')


# ---- Views ----

def public_view(game: Room) -> Dict[str, Any]:
    state: WheelState = game.state
    data = game.to_dict()
    data.update({
        'category': state.category,
        'display_phrase': display_phrase(state.phrase, state.revealed),
        'revealed_letters': list(state.revealed),
        'consonants_used': list(state.consonants_used),
        'vowels_used': list(state.vowels_used),
        'player_money': dict(state.money),
        'pending_value': state.pending_value,
        'last_spin': state.last_spin,
        'winner': state.winner,
    })
    if game.status == COMPLETED:
        data['phrase'] = state.phrase
    return data


def summary_for(game: Room, player: str) -> Dict[str, Any]:
    """One row of a player's in-play games listing."""
    return {
        'game_code': game.code,
        'category': game.state.category,
        'current_player': game.current_player,
        'is_my_turn': game.current_player == player,
        'my_money': game.state.money.get(player, 0),
        'last_activity': game.updated_at.isoformat(),
        'status': game.status,
    }
