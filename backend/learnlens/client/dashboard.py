# Wires the client pieces together the way the dashboard page does:
# one refresh token shared by the upload flow and all four panels.

import asyncio
import logging

from learnlens.client.api import ApiClient
from learnlens.client.dataset_store import DatasetStore, JsonFileStorage
from learnlens.client.submitter import UploadSubmitter
from learnlens.client.synchronizer import RefreshToken, ViewSynchronizer
from learnlens.client.validator import IntakeValidator
from learnlens.client.views import ChartsView, InsightsView, OverviewView, StudentsTableView

logger = logging.getLogger(__name__)


class Dashboard:
    def __init__(self, config, store=None, session=None, on_change=None):
        self.config = config
        self.api = ApiClient(config.api_url, session=session, timeout=config.request_timeout)
        self.store = store or DatasetStore(JsonFileStorage(config.store_path))
        self.token = RefreshToken()
        self.validator = IntakeValidator()
        self.synchronizer = ViewSynchronizer(
            validator=self.validator,
            submitter=UploadSubmitter(self.api),
            store=self.store,
            token=self.token,
            refresh_delay=config.refresh_delay,
            on_change=on_change,
        )
        self.views = [
            OverviewView(self.api, self.token),
            ChartsView(self.api, self.token),
            StudentsTableView(self.api, self.token),
            InsightsView(self.api, self.token),
        ]

    async def mount(self):
        """Mount every view and wait for their first fetch to settle."""
        await asyncio.gather(*(view.mount() for view in self.views))

    def unmount(self):
        for view in self.views:
            view.unmount()

    async def wait_for_refresh(self):
        """Wait until the post-upload refresh has fired and every view has settled."""
        await self.synchronizer.wait_for_refresh()
        pending = [task for view in self.views for task in view.pending]
        while pending:
            await asyncio.gather(*pending)
            pending = [task for view in self.views for task in view.pending]

    def render(self):
        return "\n\n".join(view.render() for view in self.views)
