#!/usr/bin/env python3
"""
RAG PR Reviewer Server

Flask server that receives GitHub pull_request webhooks and runs the
review pipeline.
"""

import logging
import sys
from pathlib import Path

# Add src directory to Python path
src_path = Path(__file__).parent / "src"
sys.path.insert(0, str(src_path))

from flask import Flask, request, jsonify
from flask_cors import CORS

from rag_reviewer import __version__
from rag_reviewer.api import ReviewerApp
from rag_reviewer.config import ConfigManager
from rag_reviewer.github.events import EventPayloadError, PullRequestEvent
from rag_reviewer.github.parser import MalformedDiffError
from rag_reviewer.models.pr_diff import PRContext

logger = logging.getLogger(__name__)


def create_app(reviewer=None) -> Flask:
    """
    Create the Flask application.

    Args:
        reviewer: ReviewerApp to serve (built from the environment if omitted)
    """
    if reviewer is None:
        reviewer = ReviewerApp(ConfigManager().config)

    app = Flask(__name__)
    CORS(app)  # Enable CORS for frontend

    @app.route('/api/v1/health', methods=['GET'])
    def health_check():
        """Health check endpoint."""
        return jsonify({
            'status': 'healthy',
            'service': 'rag-pr-reviewer',
            'version': __version__
        })

    @app.route('/api/v1/health/components', methods=['GET'])
    def component_health():
        """Component health endpoint."""
        health = reviewer.get_system_health()
        status_code = 200 if health['status'] == 'healthy' else 503
        return jsonify(health), status_code

    @app.route('/api/v1/webhook', methods=['POST'])
    def webhook():
        """Review a pull request from a GitHub webhook delivery."""
        event_name = request.headers.get('X-GitHub-Event', 'pull_request')
        if event_name != 'pull_request':
            return jsonify({'status': 'ignored', 'event': event_name})

        try:
            event = PullRequestEvent.from_payload(request.get_json(silent=True) or {})
        except EventPayloadError as e:
            return jsonify({'error': str(e), 'status': 'failed'}), 400

        if not event.is_supported:
            return jsonify({'status': 'ignored', 'action': event.action})

        try:
            comments = reviewer.review_event(event)
        except Exception as e:
            logger.exception("Webhook review failed")
            return jsonify({'error': str(e), 'status': 'failed'}), 500

        return jsonify({
            'status': 'completed',
            'repository': f"{event.owner}/{event.repo}",
            'pr_number': event.number,
            'comments': len(comments)
        })

    @app.route('/api/v1/reviews/preview', methods=['POST'])
    def preview_review():
        """Review a raw diff and return the comments without submitting."""
        data = request.get_json(silent=True) or {}
        if not isinstance(data, dict):
            data = {}
        diff = data.get('diff')
        if not diff:
            return jsonify({'error': 'diff is required', 'status': 'failed'}), 400

        if not isinstance(diff, str):
            return jsonify({'error': 'diff must be a string', 'status': 'failed'}), 400

        text_fields = {
            name: data.get(name) or default
            for name, default in (('owner', 'preview'), ('repo', 'preview'), ('title', ''), ('description', ''))
        }
        invalid = [name for name, value in text_fields.items() if not isinstance(value, str)]
        if invalid:
            return jsonify({'error': f"{', '.join(invalid)} must be strings", 'status': 'failed'}), 400

        try:
            pr = PRContext(pull_number=int(data.get('pr_number', 1)), **text_fields)
        except (TypeError, ValueError) as e:
            return jsonify({'error': f"Invalid pull request fields: {e}", 'status': 'failed'}), 400

        try:
            comments = reviewer.preview_diff(diff, pr)
        except MalformedDiffError as e:
            return jsonify({'error': str(e), 'status': 'failed'}), 400

        return jsonify({
            'status': 'completed',
            'comments': [comment.to_api() for comment in comments]
        })

    return app


if __name__ == '__main__':
    print("Starting RAG PR Reviewer Server...")
    print("Server will be available at: http://localhost:8000")
    print("Endpoints:")
    print("   - Health Check: GET /api/v1/health")
    print("   - Webhook: POST /api/v1/webhook")
    print("   - Preview Review: POST /api/v1/reviews/preview")

    create_app().run(
        host='0.0.0.0',
        port=8000,
        debug=False
    )
