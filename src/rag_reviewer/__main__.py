"""
Command line entry point.

Runs one review for the pull request event in GITHUB_EVENT_PATH, the way a
GitHub Actions job invokes it.
"""

import logging
import os
import sys
from typing import Optional

from .api import ReviewerApp
from .config import AppConfig, ConfigManager
from .exceptions import ReviewerError
from .github.events import load_event


logger = logging.getLogger(__name__)


def main(argv: Optional[list] = None) -> int:
    """Run a review for the current event. Returns the process exit code."""
    argv = sys.argv[1:] if argv is None else argv

    try:
        config = AppConfig.from_yaml(argv[0]) if argv else AppConfig.from_env()
        manager = ConfigManager(config)
    except (ValueError, FileNotFoundError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1

    event_path = os.environ.get("GITHUB_EVENT_PATH")
    if not event_path:
        logger.error("GITHUB_EVENT_PATH is not set")
        return 1

    try:
        event = load_event(event_path)
        with ReviewerApp(manager.config) as app:
            comments = app.review_event(event)
    except ReviewerError as e:
        logger.error(f"Review failed: {e}")
        return 1
    except Exception:
        logger.exception("Unexpected error during review")
        return 1

    logger.info(f"Review completed with {len(comments)} comments")
    return 0


if __name__ == "__main__":
    sys.exit(main())
