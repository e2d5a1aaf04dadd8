"""
End-to-end scenario runner for DataForge.

Runs each scenario from tests/config/e2e_config.json through analysis and
generation, then writes the records and a summary to the output directory.
Delegated scenarios need OPENAI_API_KEY; without it they run locally.
"""

import json
import logging
from pathlib import Path
import asyncio
from typing import Dict, Any
import time
from datetime import datetime

from dataforge.core.config import GenerationStrategy, GroupingStrategy, load_settings
from dataforge.core.pipeline import ForgePipeline
from dataforge.generation.export import save_generated_data


def load_config(config_path: str) -> Dict[str, Any]:
    """Load scenario configuration."""
    with open(config_path, "r") as f:
        return json.load(f)


def setup_logging(output_dir: str) -> logging.Logger:
    """Set up logging for scenario execution."""
    logger = logging.getLogger("dataforge")
    logger.setLevel(logging.INFO)

    Path(output_dir).mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(f"{output_dir}/e2e_execution.log")
    console_handler = logging.StreamHandler()

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    file_handler.setFormatter(formatter)
    console_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    return logger


async def run_scenario(
    scenario: Dict[str, Any],
    pipeline: ForgePipeline,
    output_dir: Path,
    logger: logging.Logger
) -> Dict[str, Any]:
    """Run a single scenario and return its summary."""
    start_time = time.time()
    try:
        logger.info(f"Running scenario: {scenario['name']}")
        pipeline.reset()
        pipeline.set_input_json(json.dumps(scenario["sample"]))
        pipeline.set_custom_instructions(scenario.get("instructions", ""))

        result = await pipeline.analyze()
        logger.info(f"Inferred {len(result.fields)} fields")

        for key, strategy in scenario.get("strategies", {}).items():
            pipeline.change_strategy(pipeline.field_index(key), GenerationStrategy(strategy))
        for key, options in scenario.get("options", {}).items():
            pipeline.update_options(pipeline.field_index(key), **options)

        grouping = scenario.get("grouping")
        if grouping:
            pipeline.apply_grouping_rule(
                grouping["key"],
                grouping["values"],
                GroupingStrategy(grouping.get("strategy", "fixed")),
                grouping.get("count_per_group", 10),
                grouping.get("reset_fields", [])
            )
        if "count" in scenario:
            pipeline.generate_count = scenario["count"]

        records = await pipeline.generate(seed=scenario.get("seed"))
        if len(records) != pipeline.generate_count:
            raise AssertionError(f"Expected {pipeline.generate_count} records, got {len(records)}")

        output_path = save_generated_data(records, output_dir / f"{scenario['name']}.json")
        return {
            "name": scenario["name"],
            "status": "passed",
            "mode": "local" if pipeline.local_mode else "delegated",
            "records": len(records),
            "output": str(output_path),
            "duration": time.time() - start_time,
        }

    except Exception as e:
        logger.error(f"Scenario {scenario['name']} failed: {str(e)}")
        return {
            "name": scenario["name"],
            "status": "failed",
            "error": str(e),
            "duration": time.time() - start_time,
        }


async def run_tests() -> None:
    """Run all scenarios."""
    config = load_config("tests/config/e2e_config.json")
    logger = setup_logging(config["output_dir"])
    output_dir = Path(config["output_dir"])

    try:
        settings = load_settings()
        start_time = datetime.now()
        results = []
        for scenario in config["scenarios"]:
            pipeline = ForgePipeline(settings, local_mode=scenario.get("local"))
            results.append(await run_scenario(scenario, pipeline, output_dir, logger))
        end_time = datetime.now()

        passed = len([r for r in results if r["status"] == "passed"])
        summary = {
            "start_time": start_time.isoformat(),
            "end_time": end_time.isoformat(),
            "success_rate": passed / len(results) if results else 0.0,
            "results": results,
        }
        with open(output_dir / "e2e_summary.json", "w") as f:
            json.dump(summary, f, indent=2)

        print("\nScenario execution completed!")
        print(f"Success Rate: {summary['success_rate'] * 100:.1f}%")
        print(f"Total Duration: {(end_time - start_time).total_seconds():.2f}s")
        print(f"Summary: {output_dir / 'e2e_summary.json'}")

    except Exception as e:
        logger.error(f"Scenario execution failed: {str(e)}")
        raise


if __name__ == "__main__":
    asyncio.run(run_tests())
