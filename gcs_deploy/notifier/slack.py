"""
Slack deployment notice.

Posts one message to an incoming webhook once every upload has finished.
"""

from typing import Optional

import requests

from gcs_deploy.utils.config import DeployConfig
from gcs_deploy.utils.logging import get_logger

logger = get_logger(__name__)

REQUEST_TIMEOUT_SECONDS = 30


def normalize_channel(channel: str) -> str:
    """
    Channel name in Slack's ``#channel`` syntax.

    Names already starting with ``#`` (channels) or ``@`` (direct messages)
    are returned unchanged.
    """
    channel = channel.strip()
    if channel.startswith(("#", "@")):
        return channel
    return f"#{channel}"


def build_message(display_name: str, web_root: str) -> str:
    return f"Howdy!\n{display_name} is deployed to:\n\n{web_root}"


class SlackNotifier:
    """
    Sends the completion notice for a deploy run.

    A notifier without a webhook URL or without a channel does nothing.
    """

    def __init__(
        self,
        web_hook: Optional[str],
        channel: Optional[str],
        username: str = "Bot",
        session: Optional[requests.Session] = None,
    ):
        self.web_hook = web_hook
        self.channel = channel
        self.username = username
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: DeployConfig) -> "SlackNotifier":
        return cls(config.slack_web_hook, config.slack_channel, config.slack_username)

    @property
    def enabled(self) -> bool:
        return bool(self.web_hook and self.channel)

    def notify(self, display_name: str, web_root: str) -> bool:
        """
        Post the deployment notice.

        Args:
            display_name: Name of the deployed project
            web_root: Public URL of the deployed tree

        Returns:
            True if a message was sent, False if notifications are not configured

        Raises:
            requests.RequestException: If the webhook call fails
        """
        if not self.enabled:
            logger.debug("Slack webhook or channel not configured, skipping notification")
            return False

        channel = normalize_channel(self.channel)
        payload = {
            "text": build_message(display_name, web_root),
            "channel": channel,
            "username": self.username,
        }
        response = self.session.post(self.web_hook, json=payload, timeout=REQUEST_TIMEOUT_SECONDS)
        response.raise_for_status()
        logger.info(f"Sent deployment notice to {channel}")
        return True
