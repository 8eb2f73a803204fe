"""End-to-end tests of the deploy pipeline with an in-memory bucket."""

import json
from unittest.mock import MagicMock, patch

import pytest

from fakes import FakeBucket
from gcs_deploy.deploy import resolve_display_name, run_deploy
from gcs_deploy.errors import DiscoveryError, UploadError
from gcs_deploy.notifier import SlackNotifier
from gcs_deploy.paths import resolve_paths
from gcs_deploy.utils.config import DeployConfig, resolve_config
from gcs_deploy.utils.metrics import DeployMetrics

WEB_HOOK = "https://hooks.slack.com/services/T000/B000/XXXX"


def make_config(**kwargs) -> DeployConfig:
    return resolve_config(kwargs.pop("overrides", {}), dict(bucket="b", project_id="p", **kwargs), {})


class TestRunDeploy:
    """Test run_deploy."""

    def test_versioned_upload_skips_hidden_files(self, make_tree):
        root = make_tree(["a.txt", ".hidden/x.txt", "sub/b.txt"])
        config = make_config(remote_path="rel", overrides={"version_number": "v1"})
        bucket = FakeBucket()
        notifier = MagicMock(spec=SlackNotifier)

        outcome = run_deploy(config, resolve_paths(config, root), bucket, notifier, "site")

        assert len(outcome.tasks) == 2
        assert sorted(t.destination for t in outcome.tasks) == ["rel/v1/a.txt", "rel/v1/sub/b.txt"]
        assert sorted(bucket.uploads) == ["rel/v1/a.txt", "rel/v1/sub/b.txt"]
        assert outcome.files_processed == 2
        notifier.notify.assert_called_once_with("site", "https://storage.googleapis.com/b/rel/v1")

    def test_default_metadata_applied(self, make_tree):
        root = make_tree(["style.css"])
        config = make_config()
        bucket = FakeBucket()

        run_deploy(config, resolve_paths(config, root), bucket, MagicMock(spec=SlackNotifier), "site")

        upload = bucket.uploads["style.css"]
        assert upload["content_type"] == "text/css"
        assert upload["cache_control"] == "no-cache"

    def test_failed_upload_sends_no_notification(self, make_tree):
        root = make_tree(["a.txt", "b.txt", "c.txt"])
        config = make_config(remote_path="rel", slack_web_hook=WEB_HOOK, slack_channel="deploys")
        bucket = FakeBucket(fail_on=["rel/b.txt"])
        session = MagicMock()
        notifier = SlackNotifier(config.slack_web_hook, config.slack_channel, session=session)

        with pytest.raises(UploadError, match="b.txt"):
            run_deploy(config, resolve_paths(config, root), bucket, notifier, "site")

        session.post.assert_not_called()

    def test_without_web_hook_notifier_is_a_no_op(self, make_tree):
        root = make_tree(["a.txt"])
        config = make_config(slack_channel="deploys")
        session = MagicMock()
        notifier = SlackNotifier.from_config(config)
        notifier.session = session

        outcome = run_deploy(config, resolve_paths(config, root), FakeBucket(), notifier, "site")

        assert outcome.notified is False
        session.post.assert_not_called()

    def test_notification_sent_after_uploads(self, make_tree):
        root = make_tree(["a.txt", "b.txt"])
        config = make_config(remote_path="rel", slack_web_hook=WEB_HOOK, slack_channel="deploys")
        bucket = FakeBucket()
        session = MagicMock()
        uploaded_at_notify = []
        session.post.side_effect = lambda *a, **kw: uploaded_at_notify.append(len(bucket.uploads)) or MagicMock()
        notifier = SlackNotifier.from_config(config)
        notifier.session = session

        outcome = run_deploy(config, resolve_paths(config, root), bucket, notifier, "site")

        assert outcome.notified is True
        assert uploaded_at_notify == [2]

    def test_dry_run_uploads_nothing(self, make_tree):
        root = make_tree(["a.txt", "sub/b.txt"])
        config = make_config(remote_path="rel")
        notifier = MagicMock(spec=SlackNotifier)

        outcome = run_deploy(config, resolve_paths(config, root), None, notifier, "site", dry_run=True)

        assert [t.destination for t in outcome.tasks] == ["rel/a.txt", "rel/sub/b.txt"]
        assert outcome.results == []
        notifier.notify.assert_not_called()

    def test_missing_source_root(self, tmp_path):
        config = make_config()
        notifier = MagicMock(spec=SlackNotifier)

        with pytest.raises(DiscoveryError):
            run_deploy(config, resolve_paths(config, tmp_path / "missing"), FakeBucket(), notifier, "site")

        notifier.notify.assert_not_called()

    def test_metrics_pushed_when_gateway_configured(self, make_tree):
        root = make_tree(["a.txt"])
        config = make_config(push_gateway="pushgateway:9091")
        metrics = DeployMetrics(enabled=True)

        with patch("gcs_deploy.utils.metrics.push_to_gateway") as mock_push:
            run_deploy(
                config, resolve_paths(config, root), FakeBucket(),
                MagicMock(spec=SlackNotifier), "site", metrics=metrics,
            )

        mock_push.assert_called_once_with("pushgateway:9091", job="gcs_deploy", registry=metrics.registry)

    def test_unreachable_gateway_does_not_mask_upload_error(self, make_tree):
        root = make_tree(["a.txt"])
        config = make_config(push_gateway="pushgateway:9091")

        with patch("gcs_deploy.utils.metrics.push_to_gateway", side_effect=OSError("refused")):
            with pytest.raises(UploadError):
                run_deploy(
                    config, resolve_paths(config, root), FakeBucket(fail_on=["a.txt"]),
                    MagicMock(spec=SlackNotifier), "site", metrics=DeployMetrics(enabled=True),
                )


class TestResolveDisplayName:
    """Test resolve_display_name."""

    def test_override_wins(self, tmp_path):
        config = DeployConfig(bucket="b", project_id="p", display_name="from-config")

        assert resolve_display_name("from-flag", config, str(tmp_path)) == "from-flag"

    def test_config_name(self, tmp_path):
        config = DeployConfig(bucket="b", project_id="p", display_name="from-config")

        assert resolve_display_name(None, config, str(tmp_path)) == "from-config"

    def test_package_json_name(self, tmp_path):
        package_json = tmp_path / "package.json"
        package_json.write_text(json.dumps({"name": "from-package"}))
        config = DeployConfig(bucket="b", project_id="p")

        assert resolve_display_name(None, config, str(tmp_path), str(package_json)) == "from-package"

    def test_falls_back_to_source_basename(self, tmp_path):
        config = DeployConfig(bucket="b", project_id="p")
        source = tmp_path / "dist"

        name = resolve_display_name(None, config, str(source) + "/", str(tmp_path / "package.json"))

        assert name == "dist"

    def test_unreadable_package_json_is_ignored(self, tmp_path):
        package_json = tmp_path / "package.json"
        package_json.write_text("not json")
        config = DeployConfig(bucket="b", project_id="p")

        assert resolve_display_name(None, config, str(tmp_path / "dist"), str(package_json)) == "dist"
