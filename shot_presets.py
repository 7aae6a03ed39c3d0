"""
Shot Preset System
Canned 8-ball table setups (break, straight pot, scratch, black ball) that
build a GameWorld, fire the cue ball and optionally play the turn out.
"""

import math
from typing import Optional, Sequence

from config import GameConfig
from physics import Ball, Color
from rules import Player, TurnPhase, TurnState
from world import GameWorld, WorldState

# Upper bound on ticks for a preset turn
_MAX_TICKS = 20_000

# Bottom-right corner pocket and a diagonal lane leading into it
_CORNER_LANE_OBJECT = (1300.0, 627.0)
_CORNER_LANE_CUE = (1100.0, 427.0)
_PARKED_BLACK = (300.0, 200.0)


def build_world(balls: Sequence[tuple], players: Optional[Sequence[Player]] = None,
                current_player: int = 0, ball_in_hand: bool = False,
                config: Optional[GameConfig] = None) -> GameWorld:
    """
    Build a world from ``(Color, (x, y))`` pairs instead of the standard rack.

    The list must contain exactly one white and one black ball.
    """
    made = [Ball(color, pos) for color, pos in balls]
    whites = [b for b in made if b.color == Color.WHITE]
    blacks = [b for b in made if b.color == Color.BLACK]
    if len(whites) != 1 or len(blacks) != 1:
        raise ValueError("build_world: need exactly one white and one black ball")

    state = WorldState(
        balls=tuple(made),
        eight_ball=blacks[0],
        players=tuple(players) if players else (Player(), Player()),
        current_player_index=current_player,
        turn_state=TurnState(ball_in_hand=ball_in_hand),
        phase=TurnPhase.AIMING,
    )
    return GameWorld.from_state(state, config)


def _play(world: GameWorld, power: float, rotation: float, run: bool) -> dict:
    shooter = world.current_player_index
    fired = world.shoot(power, rotation)
    result, ticks = None, 0
    if run and fired:
        while result is None and ticks < _MAX_TICKS:
            result = world.tick()
            ticks += 1
    return {"world": world, "fired": fired, "result": result,
            "ticks": ticks, "shooter": shooter}


def _angle(src, dst) -> float:
    return math.atan2(dst[1] - src[1], dst[0] - src[0])


class ShotPreset:
    """Each preset lays out the table, strikes the cue ball and returns a dict."""

    @staticmethod
    def break_shot(power: float = 50.0, run=True, config: Optional[GameConfig] = None) -> dict:
        """Full rack, cue ball driven straight into the apex."""
        world = GameWorld(config)
        return _play(world, power, 0.0, run)

    @staticmethod
    def straight_pot(color: Color = Color.RED, power: float = 20.0, run=True) -> dict:
        """One object ball on the diagonal into the bottom-right corner pocket."""
        world = build_world([
            (Color.WHITE, _CORNER_LANE_CUE),
            (color, _CORNER_LANE_OBJECT),
            (Color.BLACK, _PARKED_BLACK),
        ])
        return _play(world, power, _angle(_CORNER_LANE_CUE, _CORNER_LANE_OBJECT), run)

    @staticmethod
    def scratch(power: float = 15.0, run=True) -> dict:
        """Cue ball rolled straight into the top-left pocket without touching anything."""
        cue = (200.0, 200.0)
        world = build_world([
            (Color.WHITE, cue),
            (Color.RED, (900.0, 500.0)),
            (Color.BLACK, (1100.0, 300.0)),
        ])
        return _play(world, power, _angle(cue, (62.0, 62.0)), run)

    @staticmethod
    def eight_ball_pot(legal: bool = True, power: float = 20.0, run=True) -> dict:
        """
        Black on the corner-pocket lane for a red player.

        Args:
            legal: True = the shooter has cleared every red (match score 7);
                   False = one red is still on the table, so potting the
                   black loses the match.
        """
        balls = [
            (Color.WHITE, _CORNER_LANE_CUE),
            (Color.BLACK, _CORNER_LANE_OBJECT),
            (Color.YELLOW, (400.0, 650.0)),
        ]
        if not legal:
            balls.append((Color.RED, (300.0, 200.0)))
        score = 7 if legal else 6
        players = (Player(Color.RED, score), Player(Color.YELLOW, 1))
        world = build_world(balls, players=players)
        return _play(world, power, _angle(_CORNER_LANE_CUE, _CORNER_LANE_OBJECT), run)
