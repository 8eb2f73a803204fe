"""
gcs-deploy

Uploads a local directory tree to a Google Cloud Storage bucket under a
versioned remote path, then optionally announces the deploy on Slack.

Modules:
- utils.config: JSON config file and flag/file/default resolution
- paths: remote prefix and URL construction
- discovery: recursive listing of non-hidden files
- uploader: parallel GCS uploads
- notifier: Slack completion notice
- cli: command-line entry point
"""

__version__ = "0.1.0"
