"""
8-ball turn bookkeeping and referee rules.

The referee is a set of total functions over Player / TurnState / Ball data:
it never raises for a reachable game state.
"""

import enum
from dataclasses import dataclass, field
from typing import List, Optional

from physics import Ball, Color

# Object balls per player group
GROUP_SIZE = 7
PLAYER_COLORS = (Color.RED, Color.YELLOW)


class TurnPhase(enum.Enum):
    AIMING = 0
    BALLS_MOVING = 1
    CONCLUDING = 2


@dataclass
class Player:
    color: Optional[Color] = None
    match_score: int = 0       # 8 - own balls left - black left
    overall_score: int = 0     # matches won


@dataclass
class TurnState:
    """Scratch record for one turn; replaced at every hand-off."""
    first_collided_color: Optional[Color] = None
    pocketed_balls: List[Ball] = field(default_factory=list)
    ball_in_hand: bool = False
    is_valid: bool = False

    def record_pocketed(self, ball: Ball) -> bool:
        if any(b is ball for b in self.pocketed_balls):
            return False
        self.pocketed_balls.append(ball)
        return True


def opposite_color(color: Color) -> Color:
    return Color.RED if color == Color.YELLOW else Color.YELLOW


class Referee:

    def is_valid_first_touch(self, player: Player, first_color: Optional[Color],
                             any_pocketed: bool) -> bool:
        if first_color is None:
            return False
        if player.color is None:
            return first_color != Color.BLACK

        return (player.color == first_color
                or (player.match_score == 1 and any_pocketed and first_color != Color.BLACK)
                or (player.match_score in (7, 8) and first_color == Color.BLACK))

    def is_valid_pocketed_balls(self, player: Player, pocketed_balls: List[Ball]) -> bool:
        if not pocketed_balls:
            return True

        if player.color is not None:
            if player.match_score == 8:
                return len(pocketed_balls) == 1 and pocketed_balls[0].color == Color.BLACK
            return all(b.color == player.color for b in pocketed_balls)

        color = pocketed_balls[0].color
        return (color in PLAYER_COLORS
                and all(b.color == color for b in pocketed_balls))

    def is_valid_turn(self, player: Player, state: TurnState) -> bool:
        return (self.is_valid_first_touch(player, state.first_collided_color,
                                          len(state.pocketed_balls) > 0)
                and self.is_valid_pocketed_balls(player, state.pocketed_balls))

    def assign_colors(self, player: Player, opponent: Player,
                      pocketed_balls: List[Ball]) -> bool:
        """
        Give a colourless player the colour of a legal pocketing.

        Only call after ``is_valid_turn`` passed. Returns True if colours
        were assigned.
        """
        if player.color is not None or not pocketed_balls:
            return False
        color = pocketed_balls[0].color
        if color not in PLAYER_COLORS:
            return False
        player.color = color
        opponent.color = opposite_color(color)
        return True

    def is_game_over(self, current_player: Player, cue_ball: Ball, eight_ball: Ball) -> bool:
        return (not eight_ball.visible
                or (not cue_ball.visible and current_player.match_score in (7, 8)))
