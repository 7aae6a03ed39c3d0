"""
GameWorld — table simulation loop and turn state machine.

Owns the balls, both players, the active TurnState and the referee. One call
to ``tick()`` advances the table by one frame; when the last ball stops the
turn is concluded and control passes on (or the match restarts on game over).

The AI never touches a live world directly: it takes a ``snapshot()`` and
plays candidate shots on private worlds built with ``GameWorld.from_state``.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Protocol

from config import GameConfig
from physics import Ball, Color, PhysicsEngine
from rules import Player, Referee, TurnPhase, TurnState
from vector2 import Vector2

logger = logging.getLogger(__name__)


# ── Sound capability ──────────────────────────────────────────────────────────

class SoundSink(Protocol):
    def play(self, name: str, volume: float) -> None: ...


class NullSoundSink:
    """Swallows sound cues; used headless and by every AI simulation."""

    def play(self, name: str, volume: float) -> None:
        pass


def _volume(value: float, max_value: float) -> float:
    if max_value <= 0:
        return 1.0
    return max(0.0, min(1.0, value / max_value))


# ── Snapshot / results ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WorldState:
    """Immutable snapshot of everything a turn depends on.

    Ball objects held here are private copies; ``restore`` copies them again,
    so one state can seed any number of worlds.
    """
    balls: tuple
    eight_ball: Ball
    players: tuple
    current_player_index: int
    turn_state: TurnState
    phase: TurnPhase


@dataclass(frozen=True)
class TurnResult:
    player_index: int
    valid: bool
    pocketed: int
    game_over: bool
    next_player_index: int
    winner_index: Optional[int] = None


def _clone_table(balls, eight_ball: Ball, turn_state: TurnState):
    """Copy balls + turn state, keeping pocketed entries pointing at the copies."""
    memo = {id(b): b.copy() for b in balls}
    memo.setdefault(id(eight_ball), eight_ball.copy())
    for b in turn_state.pocketed_balls:
        memo.setdefault(id(b), b.copy())

    new_turn = TurnState(
        first_collided_color=turn_state.first_collided_color,
        pocketed_balls=[memo[id(b)] for b in turn_state.pocketed_balls],
        ball_in_hand=turn_state.ball_in_hand,
        is_valid=turn_state.is_valid,
    )
    return [memo[id(b)] for b in balls], memo[id(eight_ball)], new_turn


class GameWorld:
    """Live 8-ball table: physics, turn progression and scoring."""

    def __init__(self, config: Optional[GameConfig] = None,
                 sound: Optional[SoundSink] = None):
        self.config = config or GameConfig()
        self.engine = PhysicsEngine(self.config)
        self.referee = Referee()
        self.sound = sound or NullSoundSink()
        self.players: List[Player] = [Player(), Player()]
        self.ticks = 0
        self.init_match()

    @classmethod
    def from_state(cls, state: WorldState, config: Optional[GameConfig] = None,
                   sound: Optional[SoundSink] = None) -> "GameWorld":
        world = cls(config, sound)
        world.restore(state)
        return world

    # ──────────────────────────────────────────────────────────────────────────
    # Read-only queries
    # ──────────────────────────────────────────────────────────────────────────

    @property
    def balls(self) -> List[Ball]:
        return self._balls

    @property
    def cue_ball(self) -> Ball:
        return self._cue_ball

    @property
    def eight_ball(self) -> Ball:
        return self._eight_ball

    @property
    def turn_state(self) -> TurnState:
        return self._turn_state

    @property
    def phase(self) -> TurnPhase:
        return self._phase

    @property
    def current_player_index(self) -> int:
        return self._current_player_index

    @property
    def current_player(self) -> Player:
        return self.players[self._current_player_index]

    @property
    def next_player(self) -> Player:
        return self.players[(self._current_player_index + 1) % len(self.players)]

    @property
    def is_ball_in_hand(self) -> bool:
        return self._turn_state.ball_in_hand

    @property
    def is_turn_valid(self) -> bool:
        return self._turn_state.is_valid

    @property
    def is_game_over(self) -> bool:
        return self.referee.is_game_over(self.current_player, self._cue_ball, self._eight_ball)

    @property
    def is_balls_moving(self) -> bool:
        return any(b.moving for b in self._balls)

    @property
    def num_pocketed_balls_on_turn(self) -> int:
        return len(self._turn_state.pocketed_balls)

    def balls_by_color(self, color: Color) -> List[Ball]:
        return [b for b in self._balls if b.color == color]

    # ──────────────────────────────────────────────────────────────────────────
    # Match setup
    # ──────────────────────────────────────────────────────────────────────────

    def init_match(self) -> None:
        """Rack a fresh match; overall scores survive."""
        layout = self.config.layout
        reds = [Ball(Color.RED, p) for p in layout.red]
        yellows = [Ball(Color.YELLOW, p) for p in layout.yellow]
        self._eight_ball = Ball(Color.BLACK, layout.eight_ball)
        self._cue_ball = Ball(Color.WHITE, layout.cue_ball)
        self._balls = reds + yellows + [self._eight_ball, self._cue_ball]

        self._current_player_index = 0
        for player in self.players:
            player.color = None
            player.match_score = 0

        self._turn_state = TurnState()
        self._phase = TurnPhase.AIMING

    # ──────────────────────────────────────────────────────────────────────────
    # Commands
    # ──────────────────────────────────────────────────────────────────────────

    def shoot(self, power: float, rotation: float) -> bool:
        """Strike the cue ball. Ignored while balls move or the ball is in hand."""
        if power <= 0:
            logger.debug("shoot ignored: power=%s", power)
            return False
        if self._phase is not TurnPhase.AIMING or self.is_ball_in_hand:
            logger.debug("shoot ignored: phase=%s ball_in_hand=%s",
                         self._phase.name, self.is_ball_in_hand)
            return False

        self._cue_ball.shoot(power, rotation)
        self._phase = TurnPhase.BALLS_MOVING
        self.sound.play("strike", _volume(power, self.config.ai.max_shot_power))
        return True

    def is_valid_cue_ball_position(self, position) -> bool:
        pos = Vector2.copy(position)
        no_overlap = all(
            b.color == Color.WHITE or not b.visible
            or b.position.dist_from(pos) > self.config.ball.diameter
            for b in self._balls
        )
        return no_overlap and self.engine.is_inside_table(pos)

    def place_cue_ball(self, position) -> bool:
        """Put the cue ball down during ball-in-hand. Returns False if rejected."""
        if not self.is_ball_in_hand or self._phase is not TurnPhase.AIMING:
            logger.debug("place_cue_ball rejected: no ball in hand")
            return False
        if not self.is_valid_cue_ball_position(position):
            logger.debug("place_cue_ball rejected: illegal position %s", position)
            return False
        self._cue_ball.show(position)
        self._turn_state.ball_in_hand = False
        return True

    # ──────────────────────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────────────────────

    def step_physics(self) -> None:
        """One physics tick plus first-touch and pocket bookkeeping."""
        self.engine.update(self._balls)
        self.ticks += 1

        for ev in self.engine.events:
            if ev["type"] == "ball_ball":
                first, second = ev["ball1"], ev["ball2"]
                self.sound.play("balls_collide",
                                _volume(ev["force"], self.config.ball.max_expected_collision_force))
                if self._turn_state.first_collided_color is None:
                    # Lower list index wins when two object balls meet
                    touched = second if first.color == Color.WHITE else first
                    self._turn_state.first_collided_color = touched.color
            elif ev["type"] == "pocket":
                if self._turn_state.record_pocketed(ev["ball"]):
                    self.sound.play("rail", 1.0)

    def tick(self) -> Optional[TurnResult]:
        """Advance one frame. Returns a TurnResult when a turn just ended."""
        if self._phase is not TurnPhase.BALLS_MOVING:
            return None

        self.step_physics()
        if self.is_balls_moving:
            return None

        self.conclude_turn()
        return self.next_turn()

    def run_until_stopped(self) -> int:
        """Tick physics until the table is still; does not conclude the turn."""
        ticks = 0
        while self.is_balls_moving:
            self.step_physics()
            ticks += 1
        return ticks

    def play_shot(self, power: float, rotation: float) -> bool:
        """Shoot, run to rest and conclude the turn (without handing over)."""
        if not self.shoot(power, rotation):
            return False
        self.run_until_stopped()
        self.conclude_turn()
        return True

    # ──────────────────────────────────────────────────────────────────────────
    # Turn conclusion
    # ──────────────────────────────────────────────────────────────────────────

    def _update_match_scores(self) -> None:
        black_left = len(self.balls_by_color(Color.BLACK))
        for player in self.players:
            if player.color is not None:
                player.match_score = 8 - len(self.balls_by_color(player.color)) - black_left

    def conclude_turn(self) -> None:
        self._phase = TurnPhase.CONCLUDING
        state = self._turn_state

        for ball in state.pocketed_balls:
            if ball.color != Color.WHITE and ball in self._balls:
                self._balls.remove(ball)

        self._update_match_scores()
        state.is_valid = self.referee.is_valid_turn(self.current_player, state)

        if state.is_valid and self.referee.assign_colors(
                self.current_player, self.next_player, state.pocketed_balls):
            logger.debug("player %d takes %s", self._current_player_index,
                         self.current_player.color.value)
            self._update_match_scores()

    def next_turn(self) -> TurnResult:
        state = self._turn_state
        foul = not state.is_valid
        shooter = self._current_player_index
        pocketed = len(state.pocketed_balls)

        if self.is_game_over:
            winner = shooter if state.is_valid else (shooter + 1) % len(self.players)
            self.players[winner].overall_score += 1
            logger.info("game over: player %d wins (overall %s)", winner,
                        [p.overall_score for p in self.players])
            self.init_match()
            return TurnResult(shooter, state.is_valid, pocketed, True,
                              self._current_player_index, winner)

        if not self._cue_ball.visible:
            self._cue_ball.show(self.config.layout.cue_ball)

        if foul or pocketed == 0:
            self._current_player_index = (self._current_player_index + 1) % len(self.players)

        self._turn_state = TurnState(ball_in_hand=foul)
        self._phase = TurnPhase.AIMING
        logger.info("turn over: player %d valid=%s pocketed=%d -> player %d%s",
                    shooter, not foul, pocketed, self._current_player_index,
                    " (ball in hand)" if foul else "")
        return TurnResult(shooter, not foul, pocketed, False, self._current_player_index)

    # ──────────────────────────────────────────────────────────────────────────
    # Snapshot / restore
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> WorldState:
        balls, eight, turn = _clone_table(self._balls, self._eight_ball, self._turn_state)
        return WorldState(
            balls=tuple(balls),
            eight_ball=eight,
            players=tuple(replace(p) for p in self.players),
            current_player_index=self._current_player_index,
            turn_state=turn,
            phase=self._phase,
        )

    def restore(self, state: WorldState) -> None:
        balls, eight, turn = _clone_table(state.balls, state.eight_ball, state.turn_state)
        self._balls = balls
        self._eight_ball = eight
        self._cue_ball = next(b for b in balls if b.color == Color.WHITE)
        self.players = [replace(p) for p in state.players]
        self._current_player_index = state.current_player_index
        self._turn_state = turn
        self._phase = state.phase

    # ──────────────────────────────────────────────────────────────────────────
    # Serialisation
    # ──────────────────────────────────────────────────────────────────────────

    def to_dict(self) -> dict:
        return {
            "balls": [
                {"color": b.color.value,
                 "pos": [round(b.position.x, 3), round(b.position.y, 3)],
                 "visible": b.visible}
                for b in self._balls
            ],
            "current_player": self._current_player_index,
            "players": [
                {"color": p.color.value if p.color else None,
                 "match_score": p.match_score,
                 "overall_score": p.overall_score}
                for p in self.players
            ],
            "phase": self._phase.name,
            "ball_in_hand": self.is_ball_in_hand,
            "turn_valid": self.is_turn_valid,
            "game_over": self.is_game_over,
            "balls_moving": self.is_balls_moving,
            "pocketed_on_turn": self.num_pocketed_balls_on_turn,
        }
