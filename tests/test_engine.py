"""
pytest suite for the engine facade, configuration and CLI.
"""

import gc
import json
import os
import sys
from concurrent.futures import ThreadPoolExecutor

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from learnpath.cli import main
from learnpath.config import EngineConfig, load_config, save_config
from learnpath.engine import LearningPathEngine
from learnpath.errors import ConfigError, InvalidInputError
from learnpath.knowledge_graph import default_knowledge_graph
from learnpath.models import TopicNode, TutorContext

LEARNER = "learner-1"


@pytest.fixture()
def engine():
    return LearningPathEngine(default_knowledge_graph())


# =========================================================================
# Test: Input validation
# =========================================================================


class TestValidation:
    """Out-of-range inputs are rejected before any state changes."""

    @pytest.mark.parametrize("score", [1.5, -0.1])
    def test_bad_score(self, engine, score):
        with pytest.raises(InvalidInputError):
            engine.update_progress(LEARNER, "loops", score)
        assert engine.get_progress(LEARNER) is None

    @pytest.mark.parametrize(
        "score,time_spent,attempts",
        [(1.5, 10, 1), (0.5, -1, 1), (0.5, 10, -1)],
    )
    def test_bad_attempt(self, engine, score, time_spent, attempts):
        with pytest.raises(InvalidInputError):
            engine.adjust_difficulty("loops", score, time_spent, attempts)
        assert engine.adjuster.get_history("loops").scores == []

    def test_unknown_skill_level(self, engine):
        with pytest.raises(InvalidInputError):
            engine.generate_learning_path(LEARNER, TutorContext(current_topic="loops"), "expert")
        assert engine.get_progress(LEARNER) is None

    def test_skill_level_case_insensitive(self, engine):
        path = engine.generate_learning_path(LEARNER, TutorContext(current_topic="loops"), "Beginner")
        assert engine.get_progress(LEARNER).skill_level == "beginner"
        assert path.current_node == "loops"

    def test_empty_learner_id(self, engine):
        with pytest.raises(InvalidInputError):
            engine.update_progress("", "loops", 0.5)
        with pytest.raises(InvalidInputError):
            engine.adjust_difficulty("loops", 0.5, 10, 1, learner_id="")

    def test_invalid_input_is_value_error(self, engine):
        with pytest.raises(ValueError):
            engine.update_progress(LEARNER, "loops", 2)

    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_non_finite_score(self, engine, value):
        with pytest.raises(InvalidInputError):
            engine.update_progress(LEARNER, "loops", value)
        with pytest.raises(InvalidInputError):
            engine.adjust_difficulty("loops", value, 10, 1, learner_id=LEARNER)
        assert engine.get_progress(LEARNER) is None

    @pytest.mark.parametrize("value", [float("inf"), float("nan")])
    def test_non_finite_time(self, engine, value):
        """A rejected duration leaves the learner readable and untouched."""
        engine.update_progress(LEARNER, "loops", 0.7)
        with pytest.raises(InvalidInputError):
            engine.adjust_difficulty("loops", 0.5, value, 1, learner_id=LEARNER)
        record = engine.get_progress(LEARNER)
        assert record.average_completion_time == 0.0
        assert engine.adjuster.get_history("loops", scope=LEARNER).scores == []
        assert engine.analytics(LEARNER) is not None


# =========================================================================
# Test: Facade operations
# =========================================================================


class TestEngine:
    """End-to-end flows through the facade."""

    def test_generate_path(self, engine):
        path = engine.generate_learning_path(
            LEARNER, TutorContext(current_topic="functions"), "beginner",
        )
        assert path.recommended_path == ["variables", "functions", "control-flow", "loops", "arrays"]
        assert all(isinstance(n, TopicNode) for n in path.nodes)
        assert [n.id for n in path.nodes] == path.recommended_path
        assert path.current_node == "functions"

    def test_update_then_regenerate(self, engine):
        ctx = TutorContext(current_topic="variables")
        engine.generate_learning_path(LEARNER, ctx, "beginner")
        engine.update_progress(LEARNER, "variables", 0.9)

        record = engine.get_progress(LEARNER)
        assert record.current_topic == "functions"
        assert record.completed_topics == ["variables"]

        path = engine.generate_learning_path(LEARNER, ctx, "beginner")
        assert "variables" in path.completed_nodes

    def test_lookups(self, engine):
        assert engine.get_prerequisites("functions") == ["variables"]
        assert engine.get_next_topics("variables") == ["functions", "control-flow"]
        assert "loop-basics" in engine.get_remedial_content("loops")
        assert engine.get_prerequisites("nope") == []
        assert engine.get_next_topics("nope") == []
        assert engine.get_remedial_content("nope") == []

    def test_shared_difficulty_scenario(self, engine):
        result = engine.adjust_difficulty("X", 0.9, 2, 1)
        assert result.previous_difficulty == 5.0
        assert result.new_difficulty == pytest.approx(5.8)

    def test_learner_difficulty_is_separate(self, engine):
        engine.adjust_difficulty("X", 0.9, 2, 1, learner_id="alice")
        result = engine.adjust_difficulty("X", 0.9, 2, 1, learner_id="bob")
        assert result.previous_difficulty == 5.0

    def test_learner_attempt_feeds_completion_time(self, engine):
        engine.adjust_difficulty("loops", 0.7, 40, 1, learner_id="alice")
        engine.adjust_difficulty("loops", 0.7, 20, 1, learner_id="alice")
        assert engine.get_progress("alice").average_completion_time == pytest.approx(34.0)

    def test_unknown_learner_read_models(self, engine):
        assert engine.get_progress("ghost") is None
        assert engine.visualize("ghost") is None
        assert engine.analytics("ghost") is None

    def test_visualize_and_analytics(self, engine):
        engine.generate_learning_path(LEARNER, TutorContext(current_topic="functions"), "beginner")
        engine.update_progress(LEARNER, "variables", 0.9)

        viz = engine.visualize(LEARNER)
        statuses = {n.id: n.status for n in viz.nodes}
        assert statuses["functions"] == "current"
        assert viz.current_path == engine.get_progress(LEARNER).recommended_path

        stats = engine.analytics(LEARNER)
        assert stats.completion_rate == pytest.approx(0.1)
        assert "variables" in stats.strengths


# =========================================================================
# Test: Concurrency
# =========================================================================


class TestConcurrency:
    """Concurrent calls for one learner never lose updates."""

    def test_parallel_adjustments_same_learner(self, engine):
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(
                lambda _: engine.adjust_difficulty("loops", 0.5, 10, 1, learner_id="alice"),
                range(20),
            ))
        assert len(engine.adjuster.get_history("loops", scope="alice").scores) == 20

    def test_parallel_updates_many_learners(self, engine):
        learners = [f"l{i}" for i in range(10)]
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda lid: engine.update_progress(lid, "variables", 0.9), learners))
        for lid in learners:
            assert engine.get_progress(lid).completed_topics == ["variables"]

    def test_parallel_shared_adjustments(self, engine):
        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda _: engine.adjust_difficulty("X", 0.5, 10, 1), range(15)))
        assert len(engine.adjuster.get_history("X").scores) == 15

    def test_locks_released_after_use(self, engine):
        engine.get_progress("ghost")
        engine.visualize("ghost")
        engine.update_progress(LEARNER, "variables", 0.9)
        engine.adjust_difficulty("X", 0.5, 10, 1)
        gc.collect()
        assert len(engine._locks) == 0


# =========================================================================
# Test: Configuration
# =========================================================================


class TestConfig:
    """JSON + environment configuration."""

    def test_defaults(self):
        cfg = load_config(environ={})
        assert cfg.mastery_threshold == 0.8
        assert cfg.struggle_threshold == 0.6
        assert cfg.history_cap == 20
        assert cfg.db_path is None

    def test_json_and_env(self, tmp_path):
        path = tmp_path / "engine.json"
        path.write_text(json.dumps({"mastery_threshold": 0.9, "history_cap": 30}))
        cfg = load_config(str(path), environ={"LEARNPATH_HISTORY_CAP": "7"})
        assert cfg.mastery_threshold == 0.9
        assert cfg.history_cap == 7

    @pytest.mark.parametrize("field,value", [("min_difficulty", 0), ("max_difficulty", 11)])
    def test_difficulty_bounds_stay_in_range(self, field, value):
        with pytest.raises(ConfigError):
            load_config(environ={"LEARNPATH_" + field.upper(): str(value)})

    def test_invalid_thresholds(self, tmp_path):
        path = tmp_path / "engine.json"
        path.write_text(json.dumps({"mastery_threshold": 0.5, "struggle_threshold": 0.7}))
        with pytest.raises(ConfigError):
            load_config(str(path), environ={})

    def test_unreadable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError):
            load_config(str(path), environ={})
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.json"), environ={})

    def test_save_roundtrip(self, tmp_path):
        path = str(tmp_path / "out" / "engine.json")
        save_config(EngineConfig(history_cap=12), path)
        assert load_config(path, environ={}).history_cap == 12

    def test_from_config_sqlite(self, tmp_path):
        cfg = EngineConfig(db_path=str(tmp_path / "engine.db"))
        engine = LearningPathEngine.from_config(cfg)
        engine.update_progress(LEARNER, "variables", 0.9)
        engine.close()

        reopened = LearningPathEngine.from_config(cfg)
        record = reopened.get_progress(LEARNER)
        reopened.close()
        assert record.completed_topics == ["variables"]


# =========================================================================
# Test: CLI
# =========================================================================


class TestCli:
    """Exit codes and JSON output of the command-line front end."""

    @pytest.fixture(autouse=True)
    def _clean_env(self, monkeypatch):
        for name in EngineConfig.model_fields:
            monkeypatch.delenv("LEARNPATH_" + name.upper(), raising=False)

    def test_validate(self, capsys):
        assert main(["validate"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["total_topics"] == 10
        assert out["is_dag"] is True
        assert out["topological_order"][0] == "variables"

    def test_validate_cyclic_dataset(self, tmp_path):
        path = tmp_path / "cyclic.json"
        path.write_text(json.dumps({"topics": [
            {"id": "a", "topic": "A", "prerequisites": ["b"], "difficulty": 1,
             "estimated_time_minutes": 10},
            {"id": "b", "topic": "B", "prerequisites": ["a"], "difficulty": 1,
             "estimated_time_minutes": 10},
        ]}))
        assert main(["validate", "--dataset", str(path)]) == 1

    def test_path(self, capsys):
        code = main(["path", "--topic", "functions", "--skill", "beginner"])
        out = json.loads(capsys.readouterr().out)
        assert code == 0
        assert out["recommended_path"] == ["variables", "functions", "control-flow", "loops", "arrays"]

    def test_adjust(self, capsys):
        assert main(["adjust", "--topic", "X", "--score", "0.9", "--time", "2"]) == 0
        out = json.loads(capsys.readouterr().out)
        assert out["new_difficulty"] == pytest.approx(5.8)

    def test_adjust_rejects_bad_score(self):
        assert main(["adjust", "--topic", "X", "--score", "1.5", "--time", "2"]) == 1

    def test_no_command(self):
        assert main([]) == 2

    def test_save_config(self, tmp_path):
        path = tmp_path / "saved.json"
        assert main(["--save-config", str(path)]) == 0
        assert json.loads(path.read_text())["mastery_threshold"] == 0.8
