"""
Deploy configuration loader.

Reads the JSON config file (``.gcloud.json`` by default), then resolves the
effective configuration from three tiers: command-line overrides, config file
values and built-in defaults (which include a few environment fallbacks,
optionally read from a ``.env`` file).

Example config file:
    ```json
    {
        "bucket": "my-site",
        "projectId": "my-project",
        "remotePath": "releases",
        "metadata": {"cacheControl": "public, max-age=60"},
        "slackWebHook": "https://hooks.slack.com/services/T000/B000/XXXX",
        "slackChannel": "deploys"
    }
    ```

Usage:
    >>> file_values = load_config_file(".gcloud.json")
    >>> config = resolve_config({"version_number": "v1"}, file_values, default_values())
    >>> config.bucket
    'my-site'
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from dotenv import load_dotenv

from gcs_deploy.errors import ConfigError
from gcs_deploy.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIG_FILE = ".gcloud.json"
DEFAULT_METADATA = {"cacheControl": "no-cache"}
DEFAULT_SLACK_USERNAME = "Bot"
DEFAULT_TIMEOUT_SECONDS = 300

# Config file key -> DeployConfig field
FILE_KEYS = {
    "bucket": "bucket",
    "projectId": "project_id",
    "keyFilename": "credentials_path",
    "remotePath": "remote_path",
    "versionNumber": "version_number",
    "metadata": "metadata",
    "slackWebHook": "slack_web_hook",
    "slackChannel": "slack_channel",
    "slackUsername": "slack_username",
    "name": "display_name",
    "timeout": "timeout_seconds",
    "pushGateway": "push_gateway",
}

# Keys present in a Google service-account key file
SERVICE_ACCOUNT_KEYS = ("client_email", "private_key")


@dataclass(frozen=True)
class DeployConfig:
    """
    Effective configuration for one deploy run.

    Attributes:
        bucket: GCS bucket name
        project_id: Google Cloud project ID
        credentials_path: Service-account key file (None uses default credentials)
        remote_path: Remote path prefix inside the bucket
        version_number: Optional sub-folder appended to the remote path
        metadata: Object metadata applied to every upload
        slack_web_hook: Incoming webhook URL for the completion notice
        slack_channel: Channel the notice is posted to
        slack_username: Username the notice is posted as
        display_name: Name of the deployed project used in the notice
        timeout_seconds: Timeout passed to each upload call
        push_gateway: Prometheus Pushgateway address for run metrics
    """

    bucket: str
    project_id: str
    credentials_path: Optional[str] = None
    remote_path: Optional[str] = None
    version_number: Optional[str] = None
    metadata: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_METADATA))
    slack_web_hook: Optional[str] = field(default=None, repr=False)
    slack_channel: Optional[str] = None
    slack_username: str = DEFAULT_SLACK_USERNAME
    display_name: Optional[str] = None
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    push_gateway: Optional[str] = None


def load_config_file(config_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load and parse the JSON config file.

    Args:
        config_path: Path to the JSON config file

    Returns:
        Config values keyed by DeployConfig field name. When the file is a
        service-account key and names no ``keyFilename``, the file itself is
        used as the credentials reference.

    Raises:
        ConfigError: If the file is missing, unreadable or malformed
    """
    path = Path(config_path).resolve()
    logger.debug(f"Loading configuration from: {path}")

    if not path.is_file():
        raise ConfigError("Configuration file not found", str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON ({e.msg} at line {e.lineno})", str(path)) from e
    except OSError as e:
        raise ConfigError(f"Cannot read configuration file ({e.strerror})", str(path)) from e

    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a JSON object", str(path))

    values: Dict[str, Any] = {
        attr: data[key] for key, attr in FILE_KEYS.items() if data.get(key) is not None
    }

    if "metadata" in values:
        values["metadata"] = _normalize_metadata(values["metadata"], str(path))

    if "credentials_path" in values:
        values["credentials_path"] = str((path.parent / values["credentials_path"]).resolve())
    elif all(key in data for key in SERVICE_ACCOUNT_KEYS):
        values["credentials_path"] = str(path)

    return values


def default_values(env_file: Optional[Union[str, Path]] = ".env") -> Dict[str, Any]:
    """
    Built-in defaults, including environment fallbacks.

    Loads ``env_file`` with python-dotenv first; variables already exported
    in the environment win over the file.
    """
    if env_file and Path(env_file).is_file():
        load_dotenv(env_file, override=False)

    defaults: Dict[str, Any] = {
        "metadata": dict(DEFAULT_METADATA),
        "slack_username": DEFAULT_SLACK_USERNAME,
        "timeout_seconds": DEFAULT_TIMEOUT_SECONDS,
        "project_id": os.getenv("GOOGLE_CLOUD_PROJECT"),
        "credentials_path": os.getenv("GOOGLE_APPLICATION_CREDENTIALS"),
        "slack_web_hook": os.getenv("SLACK_WEBHOOK_URL"),
        "slack_channel": os.getenv("SLACK_CHANNEL"),
    }
    return {key: value for key, value in defaults.items() if value is not None}


def resolve_config(
    overrides: Mapping[str, Any],
    file_values: Mapping[str, Any],
    defaults: Mapping[str, Any],
) -> DeployConfig:
    """
    Build the effective configuration: override > file value > default.

    A value of None (or an empty string) in a tier means "not set" and falls
    through to the next tier.

    Raises:
        ConfigError: If ``bucket`` or ``project_id`` is unset in every tier,
            or a value has the wrong type
    """

    def pick(name: str) -> Any:
        for tier in (overrides, file_values, defaults):
            value = tier.get(name)
            if value is not None and value != "":
                return value
        return None

    bucket = pick("bucket")
    project_id = pick("project_id")
    if not bucket:
        raise ConfigError("Missing required setting 'bucket'")
    if not project_id:
        raise ConfigError("Missing required setting 'projectId'")

    metadata = pick("metadata")
    timeout = pick("timeout_seconds")
    try:
        timeout_seconds = int(timeout) if timeout is not None else DEFAULT_TIMEOUT_SECONDS
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid timeout: {timeout!r}") from e

    return DeployConfig(
        bucket=str(bucket),
        project_id=str(project_id),
        credentials_path=pick("credentials_path"),
        remote_path=_as_segment(pick("remote_path")),
        version_number=_as_segment(pick("version_number")),
        metadata=dict(metadata) if metadata is not None else dict(DEFAULT_METADATA),
        slack_web_hook=pick("slack_web_hook"),
        slack_channel=pick("slack_channel"),
        slack_username=pick("slack_username") or DEFAULT_SLACK_USERNAME,
        display_name=pick("display_name"),
        timeout_seconds=timeout_seconds,
        push_gateway=pick("push_gateway"),
    )


def _as_segment(value: Any) -> Optional[str]:
    """Render a path segment; JSON numbers such as ``2`` become ``"2"``."""
    if value is None:
        return None
    return str(value)


def _normalize_metadata(metadata: Any, path: str) -> Dict[str, str]:
    if not isinstance(metadata, dict):
        raise ConfigError("'metadata' must be a JSON object", path)
    return {str(key): str(value) for key, value in metadata.items()}
