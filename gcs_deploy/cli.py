"""
Deploy a local directory to Google Cloud Storage.

Uploads every non-hidden file under the source path to
``<bucket>/<remotePath>/<versionNumber>/`` and posts a Slack notice when done.

Usage:
    gcs-deploy
    gcs-deploy --path dist --versionNumber 1.4.2
    gcs-deploy -c deploy/.gcloud.json -r releases -s deploys
    gcs-deploy --dry-run --verbose
"""

import argparse
import sys
import uuid
from typing import List, Optional

from gcs_deploy.deploy import resolve_display_name, run_deploy
from gcs_deploy.errors import DeployError
from gcs_deploy.notifier import SlackNotifier
from gcs_deploy.paths import resolve_paths
from gcs_deploy.uploader import create_bucket
from gcs_deploy.utils.config import (
    DEFAULT_CONFIG_FILE,
    default_values,
    load_config_file,
    resolve_config,
)
from gcs_deploy.utils.logging import get_logger, set_run_id, setup_logging
from gcs_deploy.utils.metrics import DeployMetrics

logger = get_logger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="gcs-deploy",
        description="Deploy a local directory to Google Cloud Storage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Upload the current directory to the configured remote path
  %(prog)s

  # Upload dist/ into a versioned sub-folder
  %(prog)s --path dist --versionNumber 1.4.2

  # Use another config file and announce in #deploys
  %(prog)s -c deploy/.gcloud.json -s deploys

  # Show what would be uploaded
  %(prog)s --dry-run
        """,
    )

    parser.add_argument(
        "-s",
        "--slack-channel",
        dest="slack_channel",
        help="The Slack channel to post to",
    )
    parser.add_argument(
        "-r",
        "--remotePath",
        dest="remote_path",
        help="The path on Google Cloud Storage",
    )
    parser.add_argument(
        "-p",
        "--path",
        dest="path",
        help="The local path (defaults to current path)",
    )
    parser.add_argument(
        "-v",
        "--versionNumber",
        dest="version_number",
        help="The version number, added as an additional sub-folder of the remote path",
    )
    parser.add_argument(
        "-c",
        "--configFile",
        dest="config_file",
        default=DEFAULT_CONFIG_FILE,
        help=f"The local config file (default: {DEFAULT_CONFIG_FILE})",
    )
    parser.add_argument(
        "-n",
        "--name",
        help="Project name used in the notification (default: package.json name)",
    )
    parser.add_argument(
        "-t",
        "--timeout",
        type=int,
        dest="timeout_seconds",
        help="Upload timeout in seconds per file (default: from config, 300)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="List the planned uploads without uploading or notifying",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the deploy CLI."""
    args = parse_args(argv)
    setup_logging(level="DEBUG" if args.verbose else None)
    run_id = uuid.uuid4().hex[:12]
    set_run_id(run_id)
    logger.debug(f"Run ID: {run_id}")

    try:
        overrides = {
            "remote_path": args.remote_path,
            "version_number": args.version_number,
            "slack_channel": args.slack_channel,
            "timeout_seconds": args.timeout_seconds,
        }
        config = resolve_config(overrides, load_config_file(args.config_file), default_values())
        paths = resolve_paths(config, args.path)
        display_name = resolve_display_name(args.name, config, paths.source_root)

        bucket = None if args.dry_run else create_bucket(config)
        outcome = run_deploy(
            config,
            paths,
            bucket,
            SlackNotifier.from_config(config),
            display_name,
            metrics=DeployMetrics(),
            dry_run=args.dry_run,
        )

    except DeployError as e:
        logger.error(str(e))
        return 1

    except KeyboardInterrupt:
        print("\n⚠️  Deploy cancelled by user", file=sys.stderr)
        return 130

    except Exception as e:
        logger.error(f"Unexpected error: {e}", exc_info=True)
        return 1

    logger.debug(f"Processed {outcome.files_processed} files")
    return 0


if __name__ == "__main__":
    sys.exit(main())
