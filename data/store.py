"""
Submission Store Module

This module persists the submission list as a single JSON document.
Every write replaces the whole document through a temporary file and an
atomic rename, so readers never see a half-written file. Read-modify-write
cycles run under an exclusive lock that covers both threads in this process
(threading.Lock) and other worker processes (fcntl.flock on a sidecar lock
file), with a bounded wait.
"""

import fcntl
import json
import os
import stat
import tempfile
import threading
import time
from contextlib import contextmanager
from typing import Callable, Iterator, List, Optional

from config import settings
from data.models import Submission
from utils.exceptions import (
    DuplicateSubmissionError, StorageBusy, StorageCorrupt, StorageIOError
)
from utils.helpers import ensure_dir_exists
from utils.logger import get_logger

logger = get_logger(__name__)

LOCK_POLL_INTERVAL = 0.05  # seconds between non-blocking flock attempts

# Process umask, read once; new data files get the usual 0666 & ~umask
_UMASK = os.umask(0)
os.umask(_UMASK)


class JSONSubmissionStore:
    """JSON-file-backed submission store with exclusive read-modify-write."""

    def __init__(self, path: Optional[str] = None, lock_timeout: Optional[float] = None):
        """
        Initialize the store.

        Args:
            path: Location of the submissions document. Defaults to settings.DATA_FILE.
            lock_timeout: Seconds to wait for exclusive access before raising StorageBusy.
        """
        self.path = os.path.abspath(path or settings.DATA_FILE)
        self.lock_path = self.path + ".lock"
        self.lock_timeout = settings.STORE_LOCK_TIMEOUT if lock_timeout is None else lock_timeout
        self._thread_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the thread lock and the file lock for the duration of the block."""
        deadline = time.monotonic() + self.lock_timeout

        if not self._thread_lock.acquire(timeout=self.lock_timeout):
            logger.error(f"Timed out after {self.lock_timeout}s waiting for store lock: {self.path}")
            raise StorageBusy(f"Submission store is busy: {self.path}")

        try:
            try:
                ensure_dir_exists(os.path.dirname(self.path))
                lock_file = open(self.lock_path, "a")
            except OSError as e:
                logger.error(f"Could not open lock file {self.lock_path}: {e}")
                raise StorageIOError(f"Could not open lock file {self.lock_path}: {e}") from e

            with lock_file:
                self._acquire_file_lock(lock_file, deadline)
                try:
                    yield
                finally:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)
        finally:
            self._thread_lock.release()

    def _acquire_file_lock(self, lock_file, deadline: float) -> None:
        """Poll for the advisory lock until the deadline passes."""
        while True:
            try:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                return
            except BlockingIOError:
                if time.monotonic() >= deadline:
                    logger.error(f"Timed out after {self.lock_timeout}s waiting for file lock: {self.lock_path}")
                    raise StorageBusy(f"Submission store is locked by another process: {self.path}")
                time.sleep(LOCK_POLL_INTERVAL)
            except OSError as e:
                raise StorageIOError(f"Could not lock {self.lock_path}: {e}") from e

    # -------------------------------------------------------------------------
    # Raw document access (callers hold the lock when writing)
    # -------------------------------------------------------------------------

    def _read(self) -> List[Submission]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = f.read()
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.error(f"Error reading submissions file {self.path}: {e}")
            raise StorageIOError(f"Could not read {self.path}: {e}") from e

        if not raw.strip():
            return []

        try:
            document = json.loads(raw)
        except ValueError as e:
            logger.error(f"Submissions file is not valid JSON: {self.path}: {e}")
            raise StorageCorrupt(f"{self.path} is not valid JSON: {e}") from e

        if not isinstance(document, list):
            raise StorageCorrupt(f"{self.path} must hold a JSON array, got {type(document).__name__}")

        submissions = []
        seen = set()
        for index, record in enumerate(document):
            try:
                submission = Submission.from_dict(record)
            except ValueError as e:
                logger.error(f"Invalid submission record #{index} in {self.path}: {e}")
                raise StorageCorrupt(f"Invalid submission record #{index}: {e}") from e
            if submission.id in seen:
                raise StorageCorrupt(f"Duplicate submission id in {self.path}: {submission.id}")
            seen.add(submission.id)
            submissions.append(submission)

        return submissions

    def _file_mode(self) -> int:
        """Permission bits for the rewritten file: the current file's, else the umask default."""
        try:
            return stat.S_IMODE(os.stat(self.path).st_mode)
        except FileNotFoundError:
            return 0o666 & ~_UMASK

    def _write(self, submissions: List[Submission]) -> None:
        ids = [s.id for s in submissions]
        if len(ids) != len(set(ids)):
            duplicates = sorted({i for i in ids if ids.count(i) > 1})
            raise DuplicateSubmissionError(f"Refusing to store duplicate ids: {', '.join(duplicates)}")

        payload = json.dumps([s.to_dict() for s in submissions], indent=4, ensure_ascii=False)
        directory = os.path.dirname(self.path)

        tmp_path = None
        try:
            ensure_dir_exists(directory)
            with tempfile.NamedTemporaryFile(
                "w", encoding="utf-8", dir=directory,
                prefix=os.path.basename(self.path) + ".", suffix=".tmp", delete=False
            ) as tmp:
                tmp_path = tmp.name
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())
            os.chmod(tmp_path, self._file_mode())
            os.replace(tmp_path, self.path)
            tmp_path = None
        except OSError as e:
            logger.error(f"Could not save submissions to {self.path}: {e}")
            raise StorageIOError(f"Could not write {self.path}: {e}") from e
        finally:
            if tmp_path and os.path.exists(tmp_path):
                os.unlink(tmp_path)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def load(self) -> List[Submission]:
        """
        Read every stored submission.

        Returns:
            List[Submission]: Stored submissions in stored order, or an empty
            list if the file does not exist yet.

        Raises:
            StorageCorrupt: If the file is not a valid submission list.
            StorageIOError: If the file cannot be read.
        """
        return self._read()

    def get(self, submission_id: str) -> Optional[Submission]:
        """Look up one submission by id, or None."""
        for submission in self._read():
            if submission.id == submission_id:
                return submission
        return None

    def save(self, submissions: List[Submission]) -> None:
        """
        Atomically replace the stored submissions.

        Raises:
            StorageBusy: If exclusive access is not granted in time.
            StorageIOError: If the file cannot be written.
        """
        with self._exclusive():
            self._write(submissions)
        logger.debug(f"Saved {len(submissions)} submissions to {self.path}")

    def append(self, submission: Submission) -> None:
        """
        Add a submission to the end of the list without losing concurrent appends.

        Raises:
            DuplicateSubmissionError: If the id is already stored.
        """
        def _push(submissions: List[Submission]) -> List[Submission]:
            if any(s.id == submission.id for s in submissions):
                raise DuplicateSubmissionError(f"Submission {submission.id} already exists")
            submissions.append(submission)
            return submissions

        self.transact(_push)

    def transact(self, fn: Callable[[List[Submission]], List[Submission]]) -> List[Submission]:
        """
        Load, apply fn and save, all under exclusive access.

        If fn raises, nothing is written and the exception propagates.

        Args:
            fn: Receives the current list and returns the list to store.

        Returns:
            List[Submission]: The list that was stored.
        """
        with self._exclusive():
            submissions = self._read()
            updated = fn(submissions)
            if updated is None:
                raise TypeError("transact() callback must return the submission list")
            updated = list(updated)
            self._write(updated)
        return updated
