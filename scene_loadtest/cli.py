"""CLI entry point for scene load tests."""

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from scene_loadtest.config_loader import DEFAULT_CONFIG_FILE, load_config
from scene_loadtest.driver import LoadDriver, LoadSummary
from scene_loadtest.errors import ProbeNotFoundError
from scene_loadtest.metrics import MetricsRegistry
from scene_loadtest.models.result import RunMetadata
from scene_loadtest.models.settings import describe_setting
from scene_loadtest.probes.loading import load_all_manifests
from scene_loadtest.probes.registry import ProbeRegistry
from scene_loadtest.reporting.generator import generate_reports, write_reports
from scene_loadtest.run_state import RunState
from scene_loadtest.selector import ALL, select_tests
from scene_loadtest.transport import HttpTransport

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_CONFIG_ERROR = 2

STATUS_SYMBOLS = {
    "success": "✅",
    "failure": "❌",
    "auth_exhausted": "🔒",
}


def log_results_summary(log: logging.Logger, summary: LoadSummary) -> None:
    """Log a per-VU summary of the run."""
    log.info("=" * 80)
    log.info("Load Test Results Summary:")
    log.info("=" * 80)

    for worker in summary.workers:
        if worker.auth_exhausted:
            status = "auth_exhausted"
        elif worker.failed_iterations:
            status = "failure"
        else:
            status = "success"
        log.info(
            "%s VU %d: %d iteration(s), %d failed",
            STATUS_SYMBOLS[status],
            worker.vu_id,
            worker.iterations,
            worker.failed_iterations,
        )


def report_test_name(tests: str, test: str | None) -> str:
    """Name used in report file names for the selected tests."""
    if test:
        return test
    if tests.strip().lower() == ALL:
        return "all-tests"
    return "tests-" + tests.replace(",", "_").replace(" ", "")


async def run(
    config_path: Path,
    scene: str,
    tests: str = ALL,
    test: str | None = None,
    environment: str = "development",
    setting_name: str = "default",
    duration: str | None = None,
    users: int | None = None,
    iterations: int | None = None,
    reports_dir: Path = Path("reports"),
    strict: bool = True,
) -> int:
    """Run a scene load test and return exit code."""
    log = logging.getLogger("scene_loadtest")

    try:
        config = load_config(config_path)
        catalog = config.catalog(scene)
        selected = select_tests(catalog, tests, test, strict=strict)
        setting = config.test_setting(setting_name).with_overrides(
            users=users, duration=duration
        )
        target = config.environment(environment)
        scenario = setting.primary_scenario()
        run_seconds = scenario.total_seconds()
        registry = ProbeRegistry.from_manifests(load_all_manifests())
        registry.validate(scene, selected)
    except (FileNotFoundError, ValueError, ProbeNotFoundError) as e:
        log.error("Cannot start load test: %s", e)
        return EXIT_CONFIG_ERROR

    log.info(
        "Scene %s: running %d test(s): %s",
        scene,
        len(selected),
        ", ".join(t.identifier for t in selected),
    )
    log.info("Setting %s: %s", setting_name, describe_setting(setting))

    credentials = target.credentials()
    if credentials is None:
        log.warning("Test user credentials are not configured for %s", environment)

    metrics = MetricsRegistry()
    run_state = RunState()
    metadata = RunMetadata(
        scene=scene,
        test_name=report_test_name(tests, test),
        test_setting_name=setting_name,
        test_setting=setting,
        environment=environment,
        test_start_time=datetime.now().astimezone(),
    )

    async with HttpTransport.from_config(
        timeout=target.timeout, metrics=metrics
    ) as transport:
        driver = LoadDriver(
            registry=registry,
            plan={scene: selected},
            scene=scene,
            base_url=target.base_url,
            transport=transport,
            metrics=metrics,
            run_state=run_state,
            credentials=credentials,
            vus=scenario.concurrency(),
            think_time=setting.sleep_duration,
            duration=run_seconds or None,
            iterations=iterations,
        )
        summary = await driver.run()

    metadata = metadata.finished(datetime.now().astimezone())
    report = generate_reports(metrics.snapshot(), metadata, run_state.error_log)
    print(report.summary)
    write_reports(report, reports_dir)

    log_results_summary(log, summary)

    return EXIT_OK if summary.success else EXIT_FAILURES


def list_scenes(config_path: Path) -> int:
    """Print scenes, tests, settings and environments of a configuration."""
    log = logging.getLogger("scene_loadtest")
    try:
        config = load_config(config_path)
    except (FileNotFoundError, ValueError) as e:
        log.error("Cannot load configuration: %s", e)
        return EXIT_CONFIG_ERROR

    print("Scenes:")
    for scene in sorted(config.scenes):
        print(f"  {scene}")
        for descriptor in config.catalog(scene).tests:
            print(
                f"    {descriptor.ordinal}. {descriptor.display_name} "
                f"({descriptor.identifier})"
            )

    print("Test settings:")
    for name, setting in config.test_settings.items():
        print(f"  {name}: {setting.description} [{describe_setting(setting)}]")

    print("Environments:")
    for name, target in config.environments.items():
        print(f"  {name}: {target.base_url}")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Run scene-based API load tests and generate reports"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run a scene load test")
    run_parser.add_argument(
        "--scene",
        required=True,
        help="Scene to run (e.g. homepage, quotation)",
    )
    run_parser.add_argument(
        "--tests",
        default=ALL,
        help='Tests to run: "all", numbers and ranges (e.g. "1,3-5")',
    )
    run_parser.add_argument(
        "--test",
        default=None,
        help="Run a single test by id, overriding --tests",
    )
    run_parser.add_argument(
        "--environment",
        default="development",
        help="Target environment from the configuration",
    )
    run_parser.add_argument(
        "--setting",
        default="default",
        help="Test setting (load profile) from the configuration",
    )
    run_parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_FILE),
        help="Path to the YAML configuration file",
    )
    run_parser.add_argument(
        "--duration",
        default=None,
        help='Override scenario duration (e.g. "30s", "5m")',
    )
    run_parser.add_argument(
        "--users",
        type=int,
        default=None,
        help="Override the number of virtual users",
    )
    run_parser.add_argument(
        "--iterations",
        type=int,
        default=None,
        help="Stop each virtual user after this many iterations",
    )
    run_parser.add_argument(
        "--reports-dir",
        type=Path,
        default=Path("reports"),
        help="Directory for HTML, CSV and JSON reports",
    )
    run_parser.add_argument(
        "--lenient",
        action="store_true",
        help="Ignore unknown test numbers in --tests instead of failing",
    )

    list_parser = subparsers.add_parser(
        "list", help="List scenes, tests, settings and environments"
    )
    list_parser.add_argument(
        "--config",
        type=Path,
        default=Path(DEFAULT_CONFIG_FILE),
        help="Path to the YAML configuration file",
    )
    return parser


def main(argv: Sequence[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    if args.command == "list":
        sys.exit(list_scenes(args.config))

    exit_code = asyncio.run(
        run(
            config_path=args.config,
            scene=args.scene,
            tests=args.tests,
            test=args.test,
            environment=args.environment,
            setting_name=args.setting,
            duration=args.duration,
            users=args.users,
            iterations=args.iterations,
            reports_dir=args.reports_dir,
            strict=not args.lenient,
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":  # pragma: no cover
    main()
