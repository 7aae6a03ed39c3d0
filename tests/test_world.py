"""
GameWorld Tests — shot commands, ball in hand, turn hand-off and snapshots.
"""

import sys
import os
import math
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from physics import Color
from rules import Player, TurnPhase
from shot_presets import ShotPreset, build_world
from vector2 import Vector2
from world import GameWorld


class RecordingSink:
    def __init__(self):
        self.played = []

    def play(self, name, volume):
        self.played.append((name, volume))


def lane_world(**kwargs):
    """Cue and one red on the diagonal into the bottom-right pocket."""
    return build_world([
        (Color.WHITE, (1100, 427)),
        (Color.RED, (1300, 627)),
        (Color.BLACK, (300, 200)),
    ], **kwargs)


LANE_ANGLE = math.pi / 4


class TestSetup:

    def test_rack(self):
        world = GameWorld()
        assert len(world.balls) == 16
        assert len(world.balls_by_color(Color.RED)) == 7
        assert len(world.balls_by_color(Color.YELLOW)) == 7
        assert world.cue_ball.position == Vector2(413.0, 413.0)
        assert world.eight_ball.position == Vector2(1090.0, 413.0)
        assert world.phase is TurnPhase.AIMING
        assert world.current_player_index == 0

    def test_build_world_requires_cue_and_black(self):
        with pytest.raises(ValueError):
            build_world([(Color.WHITE, (400, 400)), (Color.RED, (600, 400))])


class TestShoot:

    @pytest.mark.parametrize("power", [0.0, -5.0])
    def test_non_positive_power_is_ignored(self, power):
        world = GameWorld()
        assert not world.shoot(power, 0.0)
        assert not world.cue_ball.moving
        assert world.phase is TurnPhase.AIMING

    def test_shoot_starts_turn_once(self):
        sink = RecordingSink()
        world = GameWorld(sound=sink)
        assert world.shoot(25.0, 0.0)
        assert world.phase is TurnPhase.BALLS_MOVING
        assert not world.shoot(25.0, 0.0)
        assert sink.played == [("strike", 0.5)]

    def test_shoot_rejected_with_ball_in_hand(self):
        world = lane_world(ball_in_hand=True)
        assert not world.shoot(20.0, LANE_ANGLE)


class TestBallInHand:

    def test_place_requires_ball_in_hand(self):
        world = GameWorld()
        assert not world.place_cue_ball((300, 300))
        assert world.cue_ball.position == Vector2(413.0, 413.0)

    @pytest.mark.parametrize("pos", [
        (1310, 627),     # on top of the red
        (70, 70),        # in a pocket
        (40, 400),       # in the cushion
    ])
    def test_illegal_positions(self, pos):
        world = lane_world(ball_in_hand=True)
        assert not world.is_valid_cue_ball_position(pos)
        assert not world.place_cue_ball(pos)
        assert world.is_ball_in_hand

    def test_legal_position(self):
        world = lane_world(ball_in_hand=True)
        assert world.place_cue_ball((600, 400))
        assert not world.is_ball_in_hand
        assert world.cue_ball.position == Vector2(600.0, 400.0)
        assert world.shoot(10.0, 0.0)

    def test_own_position_and_hidden_balls_ignored(self):
        world = lane_world(ball_in_hand=True)
        world.balls_by_color(Color.RED)[0].hide()
        assert world.is_valid_cue_ball_position((1100, 427))
        assert world.is_valid_cue_ball_position((1300, 627))


class TestFirstTouch:
    """First-touch colour when the earliest collision is reported."""

    def test_object_pair_lower_index_wins(self):
        world = build_world([
            (Color.RED, (600, 400)),
            (Color.YELLOW, (635, 400)),
            (Color.WHITE, (300, 600)),
            (Color.BLACK, (1100, 300)),
        ])
        world.balls[0].velocity = (10.0, 0.0)
        world.step_physics()
        assert world.turn_state.first_collided_color == Color.RED

    def test_lower_index_wins_even_when_still(self):
        world = build_world([
            (Color.YELLOW, (635, 400)),
            (Color.RED, (600, 400)),
            (Color.WHITE, (300, 600)),
            (Color.BLACK, (1100, 300)),
        ])
        world.balls[1].velocity = (10.0, 0.0)
        world.step_physics()
        assert world.turn_state.first_collided_color == Color.YELLOW

    def test_cue_ball_first_in_list(self):
        world = build_world([
            (Color.WHITE, (500, 400)),
            (Color.RED, (535, 400)),
            (Color.BLACK, (1100, 300)),
        ])
        world.cue_ball.velocity = (10.0, 0.0)
        world.step_physics()
        assert world.turn_state.first_collided_color == Color.RED

    def test_later_collisions_do_not_overwrite(self):
        world = build_world([
            (Color.WHITE, (500, 400)),
            (Color.RED, (535, 400)),
            (Color.YELLOW, (800, 400)),
            (Color.BLACK, (1100, 300)),
        ])
        world.cue_ball.velocity = (10.0, 0.0)
        world.run_until_stopped()
        assert world.turn_state.first_collided_color == Color.RED


class TestTurnFlow:

    def test_legal_pot_keeps_turn_and_assigns_colour(self):
        sink = RecordingSink()
        world = lane_world()
        world.sound = sink
        assert world.play_shot(20.0, LANE_ANGLE)
        assert world.turn_state.first_collided_color == Color.RED
        assert world.is_turn_valid
        assert world.num_pocketed_balls_on_turn == 1
        assert world.current_player.color == Color.RED
        assert world.next_player.color == Color.YELLOW
        assert world.current_player.match_score == 7   # 8 - no reds left - black still up
        names = [name for name, _ in sink.played]
        assert "balls_collide" in names and "rail" in names

        result = world.next_turn()
        assert result.valid and not result.game_over
        assert result.next_player_index == 0
        assert world.phase is TurnPhase.AIMING
        assert not world.is_ball_in_hand

    def test_legal_miss_passes_turn(self):
        world = lane_world()
        world.play_shot(6.0, LANE_ANGLE)
        assert world.is_turn_valid
        assert world.num_pocketed_balls_on_turn == 0
        result = world.next_turn()
        assert result.valid
        assert world.current_player_index == 1
        assert not world.is_ball_in_hand

    def test_foul_gives_ball_in_hand(self):
        world = lane_world()
        world.play_shot(5.0, math.pi)          # away from everything
        assert not world.is_turn_valid
        world.next_turn()
        assert world.current_player_index == 1
        assert world.is_ball_in_hand

    def test_scratch_respots_cue_ball(self):
        result = ShotPreset.scratch()
        world = result["world"]
        assert result["result"].valid is False
        assert world.cue_ball.visible
        assert world.cue_ball.position == Vector2(413.0, 413.0)
        assert world.is_ball_in_hand

    def test_scratch_on_the_black_loses(self):
        world = build_world([
            (Color.WHITE, (200, 200)),
            (Color.YELLOW, (900, 500)),
            (Color.BLACK, (1100, 300)),
        ], players=(Player(Color.RED, 7), Player(Color.YELLOW, 1)))
        world.shoot(15.0, -3 * math.pi / 4)
        result = None
        while result is None:
            result = world.tick()
        assert result.game_over
        assert result.winner_index == 1
        assert [p.overall_score for p in world.players] == [0, 1]
        assert len(world.balls) == 16, "a new match is racked after game over"

    def test_tick_is_noop_while_aiming(self):
        world = GameWorld()
        assert world.tick() is None
        assert world.ticks == 0


class TestSnapshot:

    def test_restore_reproduces_table(self):
        world = lane_world()
        state = world.snapshot()
        world.play_shot(20.0, LANE_ANGLE)

        other = GameWorld.from_state(state)
        assert other.cue_ball.position == Vector2(1100.0, 427.0)
        assert len(other.balls) == 3
        assert other.current_player.color is None

    def test_snapshot_is_not_aliased(self):
        world = lane_world()
        state = world.snapshot()
        first = GameWorld.from_state(state)
        first.play_shot(20.0, LANE_ANGLE)

        second = GameWorld.from_state(state)
        assert second.balls_by_color(Color.RED)[0].visible
        assert second.phase is TurnPhase.AIMING
        assert world.balls_by_color(Color.RED)[0].visible

    def test_same_shot_same_outcome(self):
        world = GameWorld()
        state = world.snapshot()
        a, b = GameWorld.from_state(state), GameWorld.from_state(state)
        a.play_shot(40.0, 0.05)
        b.play_shot(40.0, 0.05)
        assert a.to_dict() == b.to_dict()


class TestSerialisation:

    def test_to_dict_shape(self):
        data = GameWorld().to_dict()
        assert len(data["balls"]) == 16
        assert data["phase"] == "AIMING"
        assert data["players"][0] == {"color": None, "match_score": 0, "overall_score": 0}
        assert data["balls"][-1] == {"color": "white", "pos": [413.0, 413.0], "visible": True}
