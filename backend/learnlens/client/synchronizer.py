# This module coordinates the upload flow and the dashboard refresh.
#
#   IDLE -> UPLOADING -> SUCCESS | ERROR
#
# A new file selection (or dismissing the alert) returns to IDLE and clears
# the error message. SUCCESS stores the dataset locally and, after a short
# confirmation delay, bumps the shared refresh token so every view refetches.

import asyncio
import logging
from enum import Enum

from learnlens.client.models import Dataset

logger = logging.getLogger(__name__)


class UploadStatus(Enum):
    IDLE = "idle"
    UPLOADING = "uploading"
    SUCCESS = "success"
    ERROR = "error"


class RefreshToken:
    """Monotonically increasing counter; subscribers are told every new value."""

    def __init__(self):
        self._value = 0
        self._subscribers = []

    @property
    def value(self):
        return self._value

    def subscribe(self, callback):
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def bump(self):
        self._value += 1
        logger.info("Refresh token -> %d", self._value)
        for callback in list(self._subscribers):
            callback(self._value)
        return self._value


class ViewSynchronizer:
    def __init__(self, validator, submitter, store, token, refresh_delay=1.5, on_change=None):
        self.validator = validator
        self.submitter = submitter
        self.store = store
        self.token = token
        self.refresh_delay = refresh_delay
        self.on_change = on_change

        self.status = UploadStatus.IDLE
        self.error_message = None
        self.selected = None
        self.validation = None
        self._pending_refresh = None

    def _set_status(self, status, error_message=None):
        self.status = status
        self.error_message = error_message
        if self.on_change is not None:
            self.on_change(status, error_message)

    @property
    def can_submit(self):
        return (
            self.status is not UploadStatus.UPLOADING
            and self.selected is not None
            and self.validation is not None
            and self.validation.ok
            and self.validation.candidate is self.selected
        )

    async def select_file(self, candidate):
        """
        Select a new file and validate it locally.

        Returns the ValidationResult, or None when the selection was refused
        (upload in flight) or superseded by a newer one.
        """
        if self.status is UploadStatus.UPLOADING:
            logger.warning("Ignoring file selection while an upload is in progress")
            return None

        self.selected = candidate
        self.validation = None
        self._set_status(UploadStatus.IDLE)

        result = await self.validator.validate(candidate)
        if result is None or candidate is not self.selected:
            return None

        self.validation = result
        if not result.ok:
            self._set_status(UploadStatus.ERROR, result.error.message)
        return result

    def dismiss_error(self):
        if self.status is UploadStatus.ERROR:
            self._set_status(UploadStatus.IDLE)

    async def submit(self):
        """
        Upload the selected file once.

        Returns the UploadResult, or None if submitting is not allowed right
        now (nothing valid selected, or an upload already in flight).
        """
        if not self.can_submit:
            logger.warning("Submit ignored: no validated file or upload in progress")
            return None

        candidate = self.selected
        self._set_status(UploadStatus.UPLOADING)
        outcome = await self.submitter.submit(candidate)

        if not outcome.ok:
            self._set_status(UploadStatus.ERROR, outcome.error.message)
            return outcome

        await self._store_locally(candidate)
        self._set_status(UploadStatus.SUCCESS)
        self._schedule_refresh()
        return outcome

    async def _store_locally(self, candidate):
        try:
            dataset = await asyncio.to_thread(Dataset.from_csv, candidate.path, candidate.name)
        except (OSError, KeyError, ValueError, TypeError) as e:
            # The server already accepted the file; only the offline copy is lost
            logger.error("Could not cache %s locally: %s", candidate.name, e)
            return
        self.store.set(dataset)

    def _schedule_refresh(self):
        if self.refresh_delay <= 0:
            self.token.bump()
            return
        self._pending_refresh = asyncio.get_running_loop().create_task(self._delayed_refresh())

    async def _delayed_refresh(self):
        await asyncio.sleep(self.refresh_delay)
        self.token.bump()

    @property
    def refresh_pending(self):
        return self._pending_refresh is not None and not self._pending_refresh.done()

    async def wait_for_refresh(self):
        """Wait until a scheduled token bump, if any, has fired."""
        if self._pending_refresh is not None:
            await self._pending_refresh
