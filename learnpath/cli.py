"""
Command-line front end for inspecting topic datasets and paths.

Usage::

    python -m learnpath.cli validate --dataset ./data/topics.json
    python -m learnpath.cli path --topic functions --skill beginner \\
        --completed variables --struggled types
    python -m learnpath.cli adjust --topic loops --score 0.9 \\
        --time 12 --attempts 1
    python -m learnpath.cli --save-config ./data/engine.json

Output is JSON on stdout; logs go to stderr.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from learnpath.config import load_config, save_config
from learnpath.engine import LearningPathEngine
from learnpath.errors import LearningPathError
from learnpath.knowledge_graph import default_knowledge_graph, load_knowledge_graph
from learnpath.models import SKILL_LEVELS, TutorContext
from learnpath.utils import setup_logging

logger = logging.getLogger(__name__)


def _split(value: Optional[str]) -> List[str]:
    return [v.strip() for v in (value or "").split(",") if v.strip()]


def _emit(payload) -> None:
    json.dump(payload, sys.stdout, indent=2, default=str)
    sys.stdout.write("\n")


# =========================================================================
# Commands
# =========================================================================


def cmd_validate(args, config) -> int:
    path = args.dataset or config.dataset_path
    graph = load_knowledge_graph(path) if path else default_knowledge_graph()
    metrics = graph.metrics()
    metrics["is_dag"] = True
    metrics["topological_order"] = graph.topological_order()
    _emit(metrics)
    logger.info("✅ Dataset OK: %d topics, max_depth=%d", len(graph), metrics["max_depth"])
    return 0


def cmd_path(args, config) -> int:
    if args.dataset:
        config = config.model_copy(update={"dataset_path": args.dataset})
    engine = LearningPathEngine.from_config(config)
    try:
        context = TutorContext(
            current_topic=args.topic,
            completed_topics=_split(args.completed),
            struggled_topics=_split(args.struggled),
        )
        path = engine.generate_learning_path(args.learner, context, args.skill)
        _emit(path.model_dump())
    finally:
        engine.close()
    return 0


def cmd_adjust(args, config) -> int:
    engine = LearningPathEngine.from_config(config)
    try:
        result = engine.adjust_difficulty(
            args.topic, args.score, args.time, args.attempts, learner_id=args.learner,
        )
        _emit(result.model_dump())
    finally:
        engine.close()
    return 0


# =========================================================================
# CLI
# =========================================================================


def _parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog="python -m learnpath.cli",
        description="Learning path engine: dataset validation and path inspection.",
    )
    parser.add_argument("--config", default=None, help="Engine config JSON.")
    parser.add_argument(
        "--save-config", type=str, default=None,
        help="Save the effective settings to a config JSON and exit.",
    )
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command")

    p_validate = sub.add_parser("validate", help="Check a topic dataset for cycles.")
    p_validate.add_argument("--dataset", default=None)

    p_path = sub.add_parser("path", help="Print a recommended learning path.")
    p_path.add_argument("--topic", required=True)
    p_path.add_argument("--skill", default="intermediate", choices=SKILL_LEVELS)
    p_path.add_argument("--completed", default="", help="Comma-separated topic ids.")
    p_path.add_argument("--struggled", default="", help="Comma-separated topic ids.")
    p_path.add_argument("--learner", default="cli")
    p_path.add_argument("--dataset", default=None)

    p_adjust = sub.add_parser("adjust", help="Run one difficulty adjustment.")
    p_adjust.add_argument("--topic", required=True)
    p_adjust.add_argument("--score", type=float, required=True)
    p_adjust.add_argument("--time", type=float, required=True)
    p_adjust.add_argument("--attempts", type=int, default=1)
    p_adjust.add_argument("--learner", default=None)

    return parser.parse_args(argv)


def main(argv=None) -> int:
    """CLI entry-point."""
    args = _parse_args(argv)

    try:
        config = load_config(args.config)
    except LearningPathError as exc:
        setup_logging()
        logger.error("❌ %s", exc)
        return 1

    level = logging.DEBUG if args.verbose else getattr(logging, config.log_level.upper(), logging.INFO)
    setup_logging(level=level)

    if args.save_config:
        save_config(config, args.save_config)
        return 0

    commands = {"validate": cmd_validate, "path": cmd_path, "adjust": cmd_adjust}
    handler = commands.get(args.command)
    if handler is None:
        logger.error("No command given. Use one of: %s", ", ".join(commands))
        return 2

    try:
        return handler(args, config)
    except LearningPathError as exc:
        logger.error("❌ %s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
