"""
HTTP Server for the Moderation Queue

A thin Flask layer over the intake and moderation services:

    POST /webhook?page=<key>                    form builder webhook
    GET  /api/submissions                       listing with status counts
    GET  /api/submissions/<id>                  one submission
    POST /api/submissions/<id>/<action>         approve | reject | publish | delete
    POST /api/submissions/<id>/page             change target page
    POST /api/submissions/batch                 batch_* actions on several ids
    GET  /api/pages                             configured pages (no credentials)
    GET  /health

All business rules live in the services; this module only translates HTTP
requests and errors.
"""

from typing import Any, Dict, List

from flask import Flask, jsonify, request

from data.models import PageTable, Submission
from services.intake import WebhookIntake
from services.moderation import ModerationService
from utils.exceptions import NoDataReceived, StorageError
from utils.logger import get_logger

logger = get_logger(__name__)

SINGLE_ACTIONS = ("approve", "reject", "publish", "delete")


def _payload_fields() -> Dict[str, Any]:
    """
    Read the webhook fields, form-encoded first, then a JSON body.

    Repeated form keys (checkbox groups) keep all their values as a list.
    """
    if request.form:
        fields = {}
        for key, values in request.form.lists():
            fields[key] = values[0] if len(values) == 1 else values
        return fields

    data = request.get_json(silent=True, force=True)
    if isinstance(data, dict):
        return data
    return {}


def _submission_list(submissions: List[Submission]) -> List[Dict[str, Any]]:
    return [s.to_dict() for s in submissions]


class ModerationServer:
    """Flask application exposing the webhook intake and admin actions."""

    def __init__(self, intake: WebhookIntake, moderation: ModerationService, page_table: PageTable):
        """Initialize the server.

        Args:
            intake: Service that stores webhook deliveries.
            moderation: Service that runs admin actions.
            page_table: Configured target pages.
        """
        self.intake = intake
        self.moderation = moderation
        self.page_table = page_table
        self.app = Flask(__name__)

        self._setup_routes()
        self._setup_error_handlers()

    def _setup_error_handlers(self):
        """Set up global error handlers to ensure JSON responses."""

        @self.app.errorhandler(NoDataReceived)
        def handle_no_data(e):
            return jsonify({"success": False, "error": str(e)}), 400

        @self.app.errorhandler(StorageError)
        def handle_storage_error(e):
            logger.error(f"Storage error handling {request.method} {request.path}: {e}")
            return jsonify({"success": False, "error": "Storage error", "detail": str(e)}), 500

        @self.app.errorhandler(404)
        def handle_404(e):
            return jsonify({"success": False, "error": "Not found"}), 404

        @self.app.errorhandler(405)
        def handle_405(e):
            return jsonify({"success": False, "error": "Method not allowed"}), 405

    def _action_response(self, submissions: List[Submission], updated: int):
        return jsonify({
            "success": True,
            "updated": updated,
            "submissions": _submission_list(submissions),
        })

    def _setup_routes(self):
        """Set up Flask routes."""

        @self.app.route("/health")
        def health():
            return jsonify({"status": "healthy", "service": "moderation-queue"})

        @self.app.route("/webhook", methods=["POST"])
        def webhook():
            """Receive a form submission."""
            fields = _payload_fields()
            try:
                submission = self.intake.receive(
                    fields,
                    page_selector=request.args.get("page"),
                    ip_address=request.remote_addr,
                )
            except StorageError as e:
                logger.error(f"Could not save submission: {e}")
                return jsonify({"success": False, "error": "Could not save submission"}), 500

            return jsonify({
                "success": True,
                "message": "Submission received",
                "id": submission.id,
            })

        @self.app.route("/api/pages")
        def list_pages():
            """List configured pages without their credentials."""
            return jsonify({
                "default": self.page_table.default_key,
                "pages": [{"key": p.key, "name": p.name} for p in self.page_table.values()],
            })

        @self.app.route("/api/submissions")
        def list_submissions():
            """List submissions newest first with per-status counts."""
            page_key = request.args.get("page_key") or None
            try:
                listing = self.moderation.list_submissions(
                    status=request.args.get("status"),
                    page_key=page_key,
                    page=request.args.get("page", 1, type=int),
                    per_page=request.args.get("per_page", None, type=int),
                )
            except ValueError as e:
                return jsonify({"success": False, "error": str(e)}), 400

            return jsonify({
                "success": True,
                "submissions": _submission_list(listing.items),
                "page": listing.page,
                "per_page": listing.per_page,
                "total": listing.total,
                "total_pages": listing.total_pages,
                "counts": self.moderation.status_counts(page_key=page_key),
            })

        @self.app.route("/api/submissions/<submission_id>")
        def get_submission(submission_id: str):
            submission = self.moderation.get_submission(submission_id)
            if submission is None:
                return jsonify({"success": False, "error": "Submission not found"}), 404
            return jsonify({"success": True, "submission": submission.to_dict()})

        @self.app.route("/api/submissions/batch", methods=["POST"])
        def batch_action():
            """Apply a batch action to several submissions."""
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                data = {}
            action = data.get("action", "")
            ids = data.get("ids")
            if not isinstance(ids, list) or not ids:
                return jsonify({"success": False, "error": "ids must be a non-empty list"}), 400
            try:
                submissions = self.moderation.run_batch(action, [str(i) for i in ids])
            except ValueError as e:
                return jsonify({"success": False, "error": str(e)}), 400
            return self._action_response(submissions, len(ids))

        @self.app.route("/api/submissions/<submission_id>/page", methods=["POST"])
        def change_page(submission_id: str):
            """Retarget a submission to another configured page."""
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                data = request.form
            new_key = data.get("target_page_key", "")
            submissions = self.moderation.change_page(submission_id, new_key)
            return self._action_response(submissions, 1)

        @self.app.route("/api/submissions/<submission_id>/<action>", methods=["POST"])
        def single_action(submission_id: str, action: str):
            """Approve, reject, publish or delete one submission."""
            if action not in SINGLE_ACTIONS:
                return jsonify({"success": False, "error": f"Unknown action: {action}"}), 404
            submissions = getattr(self.moderation, action)(submission_id)
            return self._action_response(submissions, 1)

    def run(self, host: str, port: int, debug: bool = False) -> None:
        """Serve requests with Flask's threaded development server."""
        logger.info(f"Starting moderation queue server at http://{host}:{port}")
        self.app.run(host=host, port=port, debug=debug, threaded=True, use_reloader=False)


def create_app(intake: WebhookIntake, moderation: ModerationService,
               page_table: PageTable) -> Flask:
    """Build the Flask application, e.g. for a WSGI server."""
    return ModerationServer(intake, moderation, page_table).app
