"""
Moderation Queue Application

This is the main entry point for the Moderation Queue.
It wires the submission store, page configuration and services together,
and exposes them as a command line: run the webhook/admin HTTP server, or
list, inspect and moderate submissions directly.

Usage:
    python main.py serve
    python main.py list --status pending
    python main.py approve sub_1 sub_2
    python main.py publish sub_1
    python main.py change-page sub_1 page2
"""

import sys
import argparse
import logging
from typing import List, Optional

from config import settings
from config.pages import load_page_table
from config.validators import validate_settings, get_config_summary
from data.models import PageTable, Submission, SubmissionStatus
from data.protocols import SubmissionStorage
from data.store import JSONSubmissionStore
from services.intake import WebhookIntake
from services.moderation import ModerationService
from services.page_router import PageRouter
from services.protocols import PublisherProtocol
from services.publisher import FacebookPublisher
from utils.exceptions import ModerationQueueError, ConfigurationError, StorageError
from utils.helpers import format_field_name, truncate_text
from utils.logger import get_logger, setup_file_logging
from web.server import ModerationServer

# Set up logging
logger = get_logger(__name__)

MODERATION_COMMANDS = ("approve", "reject", "publish", "delete")


class ModerationQueue:
    """
    Main application class for the Moderation Queue.

    Builds every service from one page table and one store so the HTTP
    server and the command line share the same wiring.
    """

    def __init__(self, page_table: Optional[PageTable] = None,
                 store: Optional[SubmissionStorage] = None,
                 publisher: Optional[PublisherProtocol] = None):
        """Initialize the application, loading configuration for anything not injected."""
        self.page_table = page_table or load_page_table()
        self.store = store or JSONSubmissionStore()
        self.router = PageRouter(self.page_table)
        self.publisher = publisher or FacebookPublisher(self.page_table)
        self.intake = WebhookIntake(self.store, self.router)
        self.moderation = ModerationService(self.store, self.publisher, self.page_table)

    def create_server(self) -> ModerationServer:
        """Build the HTTP server over this application's services."""
        return ModerationServer(self.intake, self.moderation, self.page_table)

    def moderate(self, command: str, submission_ids: List[str]) -> List[Submission]:
        """
        Run a moderation command on one or more submissions.

        A single id runs the single-item operation, several ids the batch one.
        """
        if len(submission_ids) == 1:
            return getattr(self.moderation, command)(submission_ids[0])
        return self.moderation.run_batch(f"batch_{command}", submission_ids)


# =============================================================================
# Output helpers
# =============================================================================

def print_submission_row(submission: Submission) -> None:
    message = truncate_text(submission.message.replace("\n", " "), 60) or "(no message)"
    print(f"{submission.id:<37} {submission.status.value:<10} "
          f"{submission.target_page_key or '-':<10} {submission.created_at:<20} {message}")


def print_submission(submission: Submission, page_table: PageTable) -> None:
    page = page_table.get(submission.target_page_key or page_table.default_key)
    print(f"ID:          {submission.id}")
    print(f"Status:      {submission.status.value}")
    print(f"Target page: {submission.target_page_key} ({page.name if page else 'unknown page'})")
    print(f"Created:     {submission.created_at} from {submission.ip_address}")
    print(f"Email:       {submission.email or '-'}")
    if submission.fb_post_id:
        print(f"Published:   {submission.published_at} as {submission.fb_post_id}")
    if submission.error:
        print(f"Error:       {submission.error}")
    print("Message:")
    print(submission.message or "(no message)")
    if submission.form_data:
        print("Form fields:")
        for name, value in submission.form_data.items():
            print(f"  {format_field_name(name)}: {value}")


# =============================================================================
# Commands
# =============================================================================

def run_command(queue: ModerationQueue, args) -> int:
    """Execute the parsed command and return the exit code."""
    if args.command == "serve":
        logger.info(f"Configuration: {get_config_summary()}")
        queue.create_server().run(args.host, args.port, debug=settings.DEBUG_MODE)
        return 0

    if args.command == "list":
        listing = queue.moderation.list_submissions(
            status=args.status, page_key=args.page_key, page=args.page, per_page=args.per_page
        )
        counts = queue.moderation.status_counts(page_key=args.page_key)
        print(" | ".join(f"{name}: {count}" for name, count in counts.items()))
        for submission in listing.items:
            print_submission_row(submission)
        print(f"Page {listing.page} of {listing.total_pages} ({listing.total} submissions)")
        return 0

    if args.command == "show":
        submission = queue.moderation.get_submission(args.id)
        if submission is None:
            logger.error(f"Submission not found: {args.id}")
            return 1
        print_submission(submission, queue.page_table)
        return 0

    if args.command == "change-page":
        if args.page_key not in queue.page_table:
            logger.error(f"Unknown page key '{args.page_key}'. Configured: {', '.join(queue.page_table)}")
            return 1
        queue.moderation.change_page(args.id, args.page_key)
        return 0

    if args.command in MODERATION_COMMANDS:
        submissions = queue.moderate(args.command, args.ids)
        if args.command != "publish":
            return 0

        failed = [s for s in submissions
                  if s.id in args.ids and s.status == SubmissionStatus.APPROVED and s.error]
        for submission in failed:
            print(f"{submission.id}: {submission.error}")
        return 1 if failed else 0

    raise ValueError(f"Unknown command: {args.command}")


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Moderation Queue for form submissions posted to Facebook Pages')
    parser.add_argument('--log-file', type=str, default=settings.LOG_FILE,
                        help='Log file path (empty string to disable)')
    parser.add_argument('--log-level', type=str, choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        default=settings.LOG_LEVEL if settings.LOG_LEVEL in ('DEBUG', 'INFO', 'WARNING', 'ERROR') else 'INFO',
                        help='Logging level')

    commands = parser.add_subparsers(dest='command', required=True)

    serve = commands.add_parser('serve', help='Run the webhook and admin HTTP server')
    serve.add_argument('--host', default=settings.WEB_HOST)
    serve.add_argument('--port', type=int, default=settings.WEB_PORT)

    list_cmd = commands.add_parser('list', help='List submissions, newest first')
    list_cmd.add_argument('--status', default='all',
                          choices=['all'] + [s.value for s in SubmissionStatus])
    list_cmd.add_argument('--page-key', default=None, help='Only submissions for this target page')
    list_cmd.add_argument('--page', type=int, default=1)
    list_cmd.add_argument('--per-page', type=int, default=settings.SUBMISSIONS_PER_PAGE)

    show = commands.add_parser('show', help='Show one submission with all form fields')
    show.add_argument('id')

    for name in MODERATION_COMMANDS:
        cmd = commands.add_parser(name, help=f'{name.capitalize()} one or more submissions')
        cmd.add_argument('ids', nargs='+')

    change_page = commands.add_parser('change-page', help='Move a submission to another target page')
    change_page.add_argument('id')
    change_page.add_argument('page_key')

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None):
    """Main entry point for the application."""
    # Parse command line arguments
    args = parse_arguments(argv)

    # Set up logging
    log_level = getattr(logging, args.log_level)
    setup_file_logging(args.log_file or None, log_level)

    logger.debug(f"Running command: {args.command}")

    try:
        validate_settings()
        queue = ModerationQueue()
        exit_code = run_command(queue, args)

    except ConfigurationError as e:
        logger.error(str(e))
        exit_code = 1
    except StorageError as e:
        logger.error(f"Storage error: {e}", exc_info=True)
        exit_code = 1
    except ModerationQueueError as e:
        logger.error(f"Moderation queue error: {e}", exc_info=True)
        exit_code = 1
    except Exception as e:
        logger.error(f"Unhandled exception in Moderation Queue: {e}", exc_info=True)
        exit_code = 2

    logger.debug(f"Command {args.command} finished with exit code {exit_code}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
