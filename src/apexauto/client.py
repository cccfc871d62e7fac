"""High-level async client wiring the services to a backend."""

from __future__ import annotations

import logging
from typing import Any

import aiohttp

from apexauto._realtime import RealtimeListener
from apexauto._transport import RestTransport
from apexauto.config import ApexConfig
from apexauto.content.service import ContentService
from apexauto.exceptions import ApexConfigError, ApexError
from apexauto.inventory.service import InventoryService
from apexauto.notifications import NotificationCenter
from apexauto.settings_service import SettingsService
from apexauto.storage import ImageUploader, ObjectStorage
from apexauto.store.base import RemoteStore
from apexauto.store.rest import RestRemoteStore

_logger = logging.getLogger(__name__)


class ApexClient:
    """Async client for the dealership backend.

    Usage::

        async with ApexClient(ApexConfig.from_env()) as client:
            vehicles = await client.inventory.list_vehicles()
            sold = client.inventory.search(status="sold")

    Every collaborator can be injected; passing ``store`` skips the HTTP
    stack entirely (and the URL/API key requirement), which is how tests
    run the services against :class:`~apexauto.store.InMemoryRemoteStore`.
    """

    def __init__(
        self,
        config: ApexConfig | None = None,
        *,
        session: aiohttp.ClientSession | None = None,
        store: RemoteStore | None = None,
        storage: ImageUploader | None = None,
        notifications: NotificationCenter | None = None,
    ) -> None:
        self._config = config if config is not None else ApexConfig.from_env()
        self._external_session = session is not None
        self._http_session = session
        self._injected_store = store
        self._injected_storage = storage
        self._notifications = notifications or NotificationCenter()

        self._store: RemoteStore | None = None
        self._storage: ImageUploader | None = None
        self._realtime: RealtimeListener | None = None
        self._inventory: InventoryService | None = None
        self._content: ContentService | None = None
        self._settings: SettingsService | None = None

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> ApexClient:
        if self._injected_store is not None:
            self._store = self._injected_store
            self._storage = self._injected_storage
        else:
            if not self._config.is_configured:
                raise ApexConfigError("Backend URL and API key are required (set APEX_URL and APEX_API_KEY)")
            if self._http_session is None:
                self._http_session = aiohttp.ClientSession()
            transport = RestTransport(self._config, self._http_session)
            rest_store = RestRemoteStore(self._config, transport)
            self._store = rest_store
            self._storage = self._injected_storage or ObjectStorage(self._config, transport)
            if self._config.realtime_enabled:
                self._start_realtime(rest_store)

        self._inventory = InventoryService(self._store, config=self._config, notifications=self._notifications)
        self._content = ContentService(
            self._store,
            storage=self._storage,
            config=self._config,
            notifications=self._notifications,
        )
        self._settings = SettingsService(self._store, config=self._config, notifications=self._notifications)
        for service in (self._inventory, self._content, self._settings):
            service.start()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for service in (self._inventory, self._content, self._settings):
            if service is not None:
                await service.aclose()
        self._inventory = None
        self._content = None
        self._settings = None

        if self._realtime is not None:
            await self._realtime.stop()
            self._realtime = None
        if not self._external_session and self._http_session is not None:
            await self._http_session.close()
            self._http_session = None
        self._store = None
        self._storage = None

    def _start_realtime(self, store: RestRemoteStore) -> None:
        """Best-effort realtime startup (failures must not break REST flow)."""
        assert self._http_session is not None  # noqa: S101
        try:
            listener = RealtimeListener(self._config, self._http_session, store.subscribers.notify)
            listener.start()
            self._realtime = listener
        except Exception:
            _logger.debug("Realtime startup failed", exc_info=True)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def config(self) -> ApexConfig:
        return self._config

    @property
    def notifications(self) -> NotificationCenter:
        return self._notifications

    @property
    def store(self) -> RemoteStore:
        return self._require(self._store)

    @property
    def storage(self) -> ImageUploader | None:
        self._require(self._store)
        return self._storage

    @property
    def inventory(self) -> InventoryService:
        return self._require(self._inventory)

    @property
    def content(self) -> ContentService:
        return self._require(self._content)

    @property
    def settings(self) -> SettingsService:
        return self._require(self._settings)

    @property
    def realtime_running(self) -> bool:
        return self._realtime is not None and self._realtime.is_running

    @staticmethod
    def _require(value: Any) -> Any:
        if value is None:
            raise ApexError("Client not initialized. Use 'async with ApexClient(...) as client:'")
        return value
