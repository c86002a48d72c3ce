#!/usr/bin/env python3
"""Main entry point: explore a target's nested contexts and build the solution.

Usage:
    python -m contexthunt.runner.hunt                                   # iframe hunt on CONTEXTHUNT_BASE_URL
    python -m contexthunt.runner.hunt --mode windows --submit           # popup-window hunt, submit the answer
    python -m contexthunt.runner.hunt --url http://localhost:3000/test-ui/hardcore/iframe-inception
    python -m contexthunt.runner.hunt --mode snapshot --snapshot saved/index.html
    python -m contexthunt.runner.hunt --max-steps 20 --max-depth 3 --verbose
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from contexthunt.explorer import (
    ActionExclusions,
    ActionPerformer,
    ArtifactStrategy,
    ContextGraphExplorer,
    InvariantViolation,
    SolutionAggregator,
    TraversalBudget,
    strategy_from_name,
)
from contexthunt.explorer.artifacts import DEFAULT_STRATEGIES
from contexthunt.explorer.graph_explorer import TraversalResult
from contexthunt.runner.metrics import HuntMetrics

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_PATH = PROJECT_ROOT / "config" / "explorer_config.yaml"

load_dotenv(PROJECT_ROOT / ".env")

logger = logging.getLogger(__name__)

MODES = ("frames", "windows", "snapshot")


def load_config(path: str | Path | None = None, mode: Optional[str] = None) -> dict:
    """Load the YAML config and fold in the ``modes.<mode>`` overrides."""
    with open(path or CONFIG_PATH) as f:
        config = yaml.safe_load(f) or {}

    mode = mode or config.get("defaults", {}).get("mode", "frames")
    overrides = (config.pop("modes", None) or {}).get(mode) or {}
    for section, values in overrides.items():
        if isinstance(values, dict) and isinstance(config.get(section), dict):
            config[section] = {**config[section], **values}
        else:
            config[section] = values
    config.setdefault("defaults", {})["mode"] = mode
    return config


def build_budget(config: dict, args: Optional[argparse.Namespace] = None) -> TraversalBudget:
    values = dict(config.get("budget") or {})
    if args is not None:
        if args.max_steps is not None:
            values["max_steps"] = args.max_steps
        if args.max_depth is not None:
            values["max_depth"] = args.max_depth
        if args.max_duration is not None:
            values["max_duration_seconds"] = args.max_duration
    return TraversalBudget.from_dict(values)


def build_explorer(config: dict, on_event=None) -> ContextGraphExplorer:
    artifacts_cfg = config.get("artifacts") or {}
    actions_cfg = config.get("actions") or {}

    strategies = [ArtifactStrategy.from_dict(s) for s in artifacts_cfg.get("strategies") or []]
    performer = ActionPerformer(
        exclusions=ActionExclusions.from_dict(actions_cfg),
        placeholder=actions_cfg.get("placeholder", "treasure"),
        settle_delay=float(actions_cfg.get("settle_delay", 0.5)),
    )
    return ContextGraphExplorer(
        strategies=strategies or DEFAULT_STRATEGIES,
        performer=performer,
        max_rescans=int((config.get("explorer") or {}).get("max_rescans", 2)),
        settle_retries=int(artifacts_cfg.get("settle_retries", 1)),
        settle_delay=float(artifacts_cfg.get("settle_delay", 0.5)),
        click_collected=bool(artifacts_cfg.get("click_collected", False)),
        on_event=on_event,
    )


def build_aggregator(config: dict) -> SolutionAggregator:
    solution_cfg = config.get("solution") or {}
    name = solution_cfg.get("strategy", "concat")
    options = {"delimiter": solution_cfg.get("delimiter", ",")} if name == "concat" else {}
    return SolutionAggregator(strategy_from_name(name, **options), fallback=solution_cfg.get("fallback"))


def resolve_url(config: dict, url: Optional[str] = None) -> str:
    if url:
        return url
    base_url = os.environ.get("CONTEXTHUNT_BASE_URL", "")
    if not base_url:
        raise ValueError("no target: pass --url or set CONTEXTHUNT_BASE_URL")
    return base_url.rstrip("/") + (config.get("defaults", {}).get("path") or "")


def hunt_snapshot(snapshot: str | Path, config: dict, budget: TraversalBudget) -> tuple[TraversalResult, str]:
    """Explore a saved HTML page and its iframe files offline."""
    from contexthunt.environment.snapshot_contexts import SnapshotContext

    root = SnapshotContext.from_file(snapshot)
    result = build_explorer(config).explore(root, budget, root_anchor=root.anchor)
    return result, build_aggregator(config).aggregate(result.artifacts)


def hunt_live(
    url: str,
    config: dict,
    budget: TraversalBudget,
    metrics: HuntMetrics,
    headless: bool = True,
    submit: bool = False,
    root_selector: Optional[str] = None,
) -> tuple[TraversalResult, str]:
    """Explore a live page with Playwright, optionally submitting the solution."""
    from contexthunt.environment.playwright_contexts import PlaywrightSession

    defaults = config.get("defaults", {})
    with PlaywrightSession(headless=headless, timeout=float(defaults.get("timeout_seconds", 5))) as session:
        root = session.open(
            url,
            mode=defaults["mode"],
            root_selector=root_selector or defaults.get("root_selector"),
            start_selector=defaults.get("start_selector"),
        )
        result = build_explorer(config).explore(root, budget, root_anchor=root.anchor)
        solution = build_aggregator(config).aggregate(result.artifacts)

        form = (config.get("solution") or {}).get("form") or {}
        if submit:
            if solution and form.get("input") and form.get("submit"):
                metrics.submitted = session.fill_solution(solution, form["input"], form["submit"])
            else:
                logger.warning("Nothing submitted (solution=%r, form=%s)", solution, form)
    return result, solution


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Hunt for artifacts across nested iframes and windows")
    parser.add_argument("--url", default=None, help="Target page (default: CONTEXTHUNT_BASE_URL + config path)")
    parser.add_argument("--mode", default=None, choices=MODES)
    parser.add_argument("--snapshot", default=None, help="Saved HTML page for --mode snapshot")
    parser.add_argument("--root-selector", default=None, help="Iframe to use as the root context")
    parser.add_argument("--max-steps", type=int, default=None)
    parser.add_argument("--max-depth", type=int, default=None)
    parser.add_argument("--max-duration", type=float, default=None, help="Seconds")
    parser.add_argument("--config", default=None, help="Config YAML path")
    parser.add_argument("--output", default=None, help="Report output path")
    parser.add_argument("--submit", action="store_true", help="Fill the solution into the target's form")
    parser.add_argument("--headed", action="store_true", help="Show the browser")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)

    mode = args.mode or ("snapshot" if args.snapshot else None)
    config = load_config(args.config, mode)
    mode = config["defaults"]["mode"]

    level = "DEBUG" if args.verbose else (config.get("logging") or {}).get("level", "INFO")
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s: %(message)s",
    )

    output_path = args.output or str(PROJECT_ROOT / "results" / "hunt.json")
    budget = build_budget(config, args)
    exit_code = 0

    if mode == "snapshot":
        if not args.snapshot:
            parser.error("--mode snapshot needs --snapshot PATH")
        target = args.snapshot
    else:
        try:
            target = resolve_url(config, args.url)
        except ValueError as e:
            parser.error(str(e))

    metrics = HuntMetrics(target=target, mode=mode)
    metrics.start()
    try:
        if mode == "snapshot":
            result, solution = hunt_snapshot(target, config, budget)
        else:
            result, solution = hunt_live(
                target, config, budget, metrics,
                headless=not args.headed and config["defaults"].get("headless", True),
                submit=args.submit,
                root_selector=args.root_selector,
            )
        metrics.record(result, solution)
    except InvariantViolation as e:
        logger.error("Exploration aborted: %s", e, exc_info=True)
        metrics.error = str(e)
        exit_code = 2
    except Exception as e:
        logger.error("Hunt error: %s", e, exc_info=True)
        metrics.error = str(e)
        exit_code = 1

    metrics.finish()
    metrics.save(output_path)
    metrics.print_summary()
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
