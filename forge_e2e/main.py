#!/usr/bin/env python3
import argparse
import json
import logging
import signal
import sys
from pathlib import Path

from .core.orchestrator import DeploymentOrchestrator
from .utils.common import env_lines
from .utils.config_manager import ConfigManager
from .utils.exceptions import ForgeE2EError
from .utils.logging import setup_logging

LOG = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def _raise_on_sigterm(signum, frame):
    # Unwinds through the orchestrator so a local node it started is stopped
    raise SystemExit(128 + signum)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Deploy the token and counter contracts with forge and extract their addresses"
    )
    parser.add_argument("--config", default=None,
                        help="Path to deployment configuration file (JSON)")
    parser.add_argument("--project-dir", default=None,
                        help="Foundry project directory (overrides config)")
    parser.add_argument("--script", default=None,
                        help="Deployment script name, e.g. DeployCounter (overrides config)")
    parser.add_argument("--port", type=int, default=None,
                        help="Port for the local Anvil node (overrides config)")
    parser.add_argument("--build", action="store_true", default=None,
                        help="Run cargo build and forge build before deploying")
    parser.add_argument("--output", default=None,
                        help="Write the deployment result as JSON to this file")
    parser.add_argument("--format", default="env", choices=["env", "json"],
                        help="Output format on stdout")
    parser.add_argument("--log-level", default="INFO",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help="Logging level")
    parser.add_argument("--log-file", default=None,
                        help="Path to log file")
    return parser


def load_config(args: argparse.Namespace):
    """Load configuration and apply command-line overrides"""
    if args.config:
        config_path = Path(args.config)
        config = ConfigManager(config_dir=config_path.parent).load_deploy_config(config_path.name)
    else:
        config = ConfigManager().load_deploy_config()

    if args.project_dir is not None:
        config.project_dir = Path(args.project_dir)
    if args.script is not None:
        config.script = args.script
    if args.port is not None:
        config.anvil.port = args.port
    if args.build is not None:
        config.build = args.build
    return config


def main(argv=None) -> int:
    """Main execution flow"""
    args = build_parser().parse_args(argv)

    # Logs go to stderr so stdout carries only the result
    setup_logging(args.log_level, args.log_file, stream=sys.stderr)
    signal.signal(signal.SIGTERM, _raise_on_sigterm)

    try:
        config = load_config(args)
        result = DeploymentOrchestrator(config).run()
    except ForgeE2EError as e:
        LOG.error(str(e))
        hint = e.details.get("hint")
        if hint:
            LOG.error(f"Hint: {hint}")
        return EXIT_FAILURE
    except KeyboardInterrupt:
        LOG.error("Interrupted")
        return EXIT_INTERRUPTED

    if args.output:
        output_file = Path(args.output)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        with open(output_file, 'w') as f:
            json.dump(result.to_dict(), f, indent=2)
        LOG.info(f"Deployment result saved to: {output_file}")

    if args.format == "json":
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print(env_lines(result.to_env()))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
