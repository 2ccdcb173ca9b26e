"""
RAG PR Reviewer

Convention-grounded automatic review of GitHub pull requests: each diff
hunk is reviewed by an LLM with engineering conventions retrieved from a
vector index, and findings are posted as inline review comments.
"""

__version__ = "1.0.0"

from .api import ReviewerApp
from .config import AppConfig, ConfigManager

__all__ = ["ReviewerApp", "AppConfig", "ConfigManager"]
