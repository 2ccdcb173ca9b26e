"""
Pull Request Events

Parses the GitHub ``pull_request`` webhook / Actions event payload into a
validated event object.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError, field_validator

from ..exceptions import ReviewerError


logger = logging.getLogger(__name__)


SUPPORTED_ACTIONS = {"opened", "synchronize"}


class EventPayloadError(ReviewerError):
    """Raised when an event payload is missing required fields."""
    pass


class RepositoryOwner(BaseModel):
    login: str


class Repository(BaseModel):
    name: str
    owner: RepositoryOwner


class PullRequestEvent(BaseModel):
    """Subset of the pull_request event payload the reviewer uses."""
    action: str
    number: int
    repository: Repository
    before: Optional[str] = None
    after: Optional[str] = None

    @field_validator("number")
    @classmethod
    def validate_number(cls, v):
        if v <= 0:
            raise ValueError("PR number must be positive")
        return v

    @property
    def owner(self) -> str:
        return self.repository.owner.login

    @property
    def repo(self) -> str:
        return self.repository.name

    @property
    def is_supported(self) -> bool:
        return self.action in SUPPORTED_ACTIONS

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "PullRequestEvent":
        """
        Build an event from a decoded JSON payload.

        Webhook deliveries carry the PR number under ``pull_request.number``
        while Actions event files also expose it at the top level.

        Raises:
            EventPayloadError: If required fields are missing or invalid
        """
        if not isinstance(payload, dict):
            raise EventPayloadError("Event payload must be a JSON object")

        data = dict(payload)
        if "number" not in data and isinstance(data.get("pull_request"), dict):
            data["number"] = data["pull_request"].get("number")

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise EventPayloadError(f"Invalid pull request event: {e}") from e


def load_event(event_path: str) -> PullRequestEvent:
    """
    Load a pull request event from a JSON file (GITHUB_EVENT_PATH).

    Raises:
        EventPayloadError: If the file is missing, not JSON, or incomplete
    """
    path = Path(event_path) if event_path else None
    if path is None or not path.is_file():
        raise EventPayloadError(f"Event file not found: {event_path!r}")

    try:
        with open(path, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except json.JSONDecodeError as e:
        raise EventPayloadError(f"Event file is not valid JSON: {e}") from e

    event = PullRequestEvent.from_payload(payload)
    logger.info(f"Loaded '{event.action}' event for {event.owner}/{event.repo}#{event.number}")
    return event
