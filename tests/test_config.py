"""
Config Tests — defaults, partial JSON overrides and load-time validation.
"""

import sys
import os
import json
import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from config import DIFFICULTY_ITERATIONS, GameConfig, load_config


class TestDefaults:
    """Default values of the classic table."""

    def test_table_and_ball(self):
        cfg = GameConfig()
        assert (cfg.table.width, cfg.table.height) == (1500.0, 825.0)
        assert len(cfg.table.pockets) == 6
        assert cfg.ball.radius == 19.0
        assert cfg.physics.friction == 0.018

    def test_layout_holds_seven_per_group(self):
        layout = GameConfig().layout
        assert len(layout.red) == 7
        assert len(layout.yellow) == 7

    def test_difficulty_presets(self):
        assert DIFFICULTY_ITERATIONS == {"easy": 30, "medium": 50, "hard": 100, "insane": 700}


class TestOverrides:

    def test_partial_nested_override(self):
        cfg = GameConfig.from_dict({"physics": {"friction": 0.02}, "ai": {"iterations": 5}})
        assert cfg.physics.friction == 0.02
        assert cfg.physics.collision_loss == 0.018
        assert cfg.ai.iterations == 5
        assert cfg.table == GameConfig().table

    def test_lists_become_tuples(self):
        cfg = GameConfig.from_dict({"layout": {"cue_ball": [400, 400]}})
        assert cfg.layout.cue_ball == (400.0, 400.0)

    def test_with_ai_leaves_original(self):
        base = GameConfig()
        hard = base.with_ai(iterations=100)
        assert hard.ai.iterations == 100
        assert base.ai.iterations == 30

    def test_to_dict_round_trips(self):
        cfg = GameConfig.from_dict({"ball": {"diameter": 40}})
        assert GameConfig.from_dict(cfg.to_dict()) == cfg

    def test_load_config(self, tmp_path):
        path = tmp_path / "game.json"
        path.write_text(json.dumps({"ai": {"iterations": 7, "restart_interval": 3}}))
        cfg = load_config(path)
        assert cfg.ai.iterations == 7
        assert cfg.ai.restart_interval == 3


class TestValidation:
    """Bad configuration is rejected with ValueError at load time."""

    @pytest.mark.parametrize("data", [
        {"rendering": {}},
        {"ai": {"depth": 3}},
        {"physics": 0.5},
        {"physics": {"friction": 1.0}},
        {"physics": {"collision_loss": -0.1}},
        {"ball": {"diameter": 0}},
        {"ai": {"iterations": 0}},
        {"ai": {"min_shot_power": 60}},
        {"ai": {"player_index": 2}},
        {"layout": {"red": [[1, 2, 3]]}},
        {"layout": {"cue_ball": 5}},
    ])
    def test_rejects(self, data):
        with pytest.raises(ValueError):
            GameConfig.from_dict(data)
