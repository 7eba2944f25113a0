from __future__ import annotations

import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field

from drawit.protocol.constants import (
    DRAWER_BONUS,
    FIRST_PLACE_POINTS,
    MIN_GUESS_POINTS,
    PLACEMENT_STEP,
    ChatType,
    EndReason,
)
from drawit.protocol.messages import (
    Chat,
    GuessResult,
    Players,
    RoundEnded,
    RoundStarted,
    RoundView,
    Word,
)

from .broadcast import BroadcastBus
from .errors import (
    AlreadyActive,
    AlreadyGuessed,
    DrawerCannotGuess,
    EmptyGuess,
    InsufficientPlayers,
    NoActiveRound,
)
from .roster import Roster

log = logging.getLogger(__name__)


def score_for_placement(index: int) -> int:
    """Points for the `index`-th (0-based) correct guess of a round."""
    return max(MIN_GUESS_POINTS, FIRST_PLACE_POINTS - PLACEMENT_STEP * index)


def normalize_guess(text: str | None) -> str:
    return (text or "").strip().casefold()


@dataclass
class Round:
    active: bool = False
    word: str | None = None
    drawer_id: str | None = None
    guessed: list[str] = field(default_factory=list)
    round_number: int = 0

    def reset(self) -> None:
        self.active = False
        self.word = None
        self.drawer_id = None
        self.guessed = []


@dataclass(frozen=True)
class GuessOutcome:
    correct: bool
    points: int = 0
    order: int = 0
    round_ended: bool = False


class RoundController:
    """
    Round lifecycle: Idle <-> Active.

    Every transition validates first and mutates afterwards, so a rejected
    call leaves no trace. Events go out through the bus in the order the
    state changed.
    """

    def __init__(
        self,
        roster: Roster,
        bus: BroadcastBus,
        words: Sequence[str],
        *,
        rng: random.Random | None = None,
        min_players: int = 2,
    ) -> None:
        if not words:
            raise ValueError("vocabulary must not be empty")
        self.roster = roster
        self.bus = bus
        self.words = list(words)
        self.rng = rng or random.Random()
        self.min_players = min_players
        self.round = Round()

    @property
    def active(self) -> bool:
        return self.round.active

    @property
    def drawer_id(self) -> str | None:
        return self.round.drawer_id

    def public_state(self) -> RoundView:
        r = self.round
        return RoundView(
            active=r.active,
            drawerId=r.drawer_id,
            guessed=list(r.guessed),
            roundNumber=r.round_number,
        )

    def start_round(self, requester_id: str | None = None) -> None:
        if self.round.active:
            raise AlreadyActive()
        if len(self.roster) < max(2, self.min_players):
            raise InsufficientPlayers(max(2, self.min_players))

        drawer_id = self.roster.next_drawer()
        drawer = self.roster.get(drawer_id)
        if drawer is None:
            raise InsufficientPlayers(max(2, self.min_players))

        r = self.round
        r.active = True
        r.word = self.rng.choice(self.words)
        r.drawer_id = drawer.id
        r.guessed = []
        r.round_number += 1
        log.info(
            "round %d started drawer=%s requested_by=%s",
            r.round_number,
            drawer.id,
            requester_id,
        )

        self.bus.emit(
            RoundStarted(drawerId=drawer.id, drawerName=drawer.name, roundNumber=r.round_number)
        )
        self.bus.send_to(drawer.id, Word(word=r.word))

    def end_round(self, reason: EndReason = EndReason.STOPPED) -> bool:
        """Reveal the word and go idle. Returns False if there was nothing to end."""
        r = self.round
        if not r.active and r.word is None:
            return False
        word = r.word
        log.info("round %d ended reason=%s", r.round_number, reason.value)
        r.reset()
        self.bus.emit(RoundEnded(reason=reason, word=word))
        return True

    def evaluate_guess(self, identity: str, text: str | None) -> GuessOutcome:
        r = self.round
        if not r.active or r.word is None:
            raise NoActiveRound()
        if identity == r.drawer_id:
            raise DrawerCannotGuess()
        guess = normalize_guess(text)
        if not guess:
            raise EmptyGuess()
        if identity in r.guessed:
            raise AlreadyGuessed()

        guesser = self.roster.get(identity)
        guesser_name = guesser.name if guesser is not None else identity

        if guess != normalize_guess(r.word):
            self.bus.emit(Chat(sender=guesser_name, message=text or "", type=ChatType.GUESS))
            return GuessOutcome(correct=False)

        placement = len(r.guessed)
        r.guessed.append(identity)
        points = score_for_placement(placement)
        self.roster.award(identity, points)
        self.roster.award(r.drawer_id, DRAWER_BONUS)

        self.bus.emit(
            GuessResult(
                playerId=identity,
                playerName=guesser_name,
                points=points,
                drawerBonus=DRAWER_BONUS,
                order=len(r.guessed),
            )
        )
        self.bus.emit(Players(players=self.roster.snapshot()))

        ended = self._end_if_everyone_guessed()
        return GuessOutcome(correct=True, points=points, order=placement + 1, round_ended=ended)

    def on_player_removed(self, identity: str) -> None:
        """Keep the round consistent after `identity` left the roster."""
        r = self.round
        if not r.active:
            return
        if identity == r.drawer_id:
            self.end_round(EndReason.DRAWER_LEFT)
            return
        # The threshold follows the live player count, so a departure can
        # complete the round, but only guessers still present count toward it.
        present = sum(1 for g in r.guessed if g in self.roster)
        if present and present >= max(1, len(self.roster) - 1):
            self.end_round(EndReason.EVERYONE_GUESSED)

    def _end_if_everyone_guessed(self) -> bool:
        if len(self.round.guessed) >= max(1, len(self.roster) - 1):
            return self.end_round(EndReason.EVERYONE_GUESSED)
        return False
