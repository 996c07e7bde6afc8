"""Config discovery client: refresh lifecycle and lookup API."""

import asyncio
from typing import Any

import structlog
from pydantic import TypeAdapter
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..config.settings import DiscoverySettings
from ..core.errors import ConfigUnavailable, TransportError
from ..core.interfaces import Transport
from ..core.types import (
    AppConfig,
    Asset,
    AssetConfig,
    AssetSchedule,
    AssetsSchedule,
    CollateralAsset,
    Market,
    VPIParams,
    VPIParamsParsed,
    Vault,
)
from ..data.transport import HttpTransport
from ..publish.feed import Subscription, UpdateFeed
from ..runner.refresh import ChangeDetector, RefreshLoop
from ..snapshot.builder import Snapshot, build_snapshot

logger = structlog.get_logger(__name__)

ASSETS_PATH = "/assets"
ASSETS_SCHEDULE_PATH = "/assets-schedule"
ASSETS_CONFIG_PATH = "/assets-config"
VPI_HISTORY_PATH = "/vpi-history"

_ASSETS = TypeAdapter(list[Asset])
_ASSET_CONFIGS = TypeAdapter(list[AssetConfig])
_VPI_HISTORY = TypeAdapter(dict[str, dict[str, VPIParams]])


class ConfigDiscovery:
    """Keeps an indexed copy of the discovery config up to date.

    Use ``await ConfigDiscovery.create(settings)`` to get a client that
    already holds a config, then ``start()`` (or ``async with``) to keep it
    refreshed in the background. Lookups never block: each call reads the
    current snapshot reference once and queries that immutable snapshot, so
    they are safe from any thread while a refresh is in flight.
    """

    def __init__(
        self,
        settings: DiscoverySettings,
        transport: Transport | None = None,
    ) -> None:
        """Initialize client without fetching anything.

        Args:
            settings: Client settings
            transport: Optional transport (an HttpTransport is created if not
                provided and closed by close())
        """
        self.settings = settings
        self.base_url = settings.base_url
        self.transport = transport or HttpTransport(
            timeout=settings.request_timeout_seconds
        )
        self._owns_transport = transport is None

        self._snapshot: Snapshot | None = None
        self._detector = ChangeDetector()
        self._refresh_lock = asyncio.Lock()
        self._feed: UpdateFeed[Snapshot] = UpdateFeed(settings.update_buffer_size)
        self._loop = RefreshLoop(
            self.refresh,
            interval_seconds=settings.refresh_interval_seconds,
            max_backoff_seconds=settings.max_backoff_seconds,
        )

    @classmethod
    async def create(
        cls,
        settings: DiscoverySettings,
        transport: Transport | None = None,
    ) -> "ConfigDiscovery":
        """Create a client and perform the mandatory first fetch.

        Transport errors are retried up to settings.initial_fetch_attempts
        times; decode and parse errors fail immediately.

        Raises:
            DiscoveryError: If the first config cannot be fetched and built
        """
        client = cls(settings, transport)
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(settings.initial_fetch_attempts),
                wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                retry=retry_if_exception_type(TransportError),
                reraise=True,
            ):
                with attempt:
                    if attempt.retry_state.attempt_number > 1:
                        logger.warning(
                            "Retrying initial config fetch",
                            attempt=attempt.retry_state.attempt_number,
                            url=client.base_url,
                        )
                    await client.refresh()
        except Exception as e:
            logger.error(
                "Initial config fetch failed", url=client.base_url, error=str(e)
            )
            await client.close()
            raise

        logger.info(
            "Config discovery client ready",
            url=client.base_url,
            composed_at=client.snapshot.composed_at,
        )
        return client

    # -------------------------
    # Lifecycle
    # -------------------------
    async def __aenter__(self) -> "ConfigDiscovery":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def start(self) -> None:
        """Start the background refresh loop."""
        if self._snapshot is None:
            raise ConfigUnavailable("Cannot start refreshing before the first fetch")
        self._loop.start()

    @property
    def is_running(self) -> bool:
        return self._loop.is_running

    async def stop(self) -> None:
        """Stop the background refresh loop."""
        await self._loop.stop()

    async def close(self) -> None:
        """Stop refreshing, end subscriptions and release the transport."""
        await self.stop()
        self._feed.close()
        if self._owns_transport:
            await self.transport.close()

    # -------------------------
    # Refresh
    # -------------------------
    async def refresh(self) -> bool:
        """Fetch the config and publish a new snapshot if it changed.

        Returns:
            True if a new snapshot was published

        Raises:
            DiscoveryError: If fetching, decoding or parsing fails; the
                current snapshot stays published
        """
        async with self._refresh_lock:
            config = await self.transport.fetch(self.base_url, AppConfig)

            if not self._detector.has_changed(config.composed_at):
                logger.debug("Config unchanged", composed_at=config.composed_at)
                return False

            logger.info(
                "Config is updated, fetching updates",
                composed_at=config.composed_at,
                previous=self._detector.last_composed_at,
            )

            assets, schedule, asset_configs, vpi_history = await self._fetch_all(
                (self.base_url + ASSETS_PATH, _ASSETS),
                (self.base_url + ASSETS_SCHEDULE_PATH, AssetsSchedule),
                (self.base_url + ASSETS_CONFIG_PATH, _ASSET_CONFIGS),
                (self.base_url + VPI_HISTORY_PATH, _VPI_HISTORY),
            )

            snapshot = build_snapshot(
                config,
                assets=assets,
                asset_configs=asset_configs,
                schedules=schedule.schedules,
                vpi_history=vpi_history,
            )
            self._publish(snapshot)
            return True

    async def _fetch_all(self, *requests: tuple[str, Any]) -> list[Any]:
        """Fetch documents concurrently; all of them or none.

        On the first failure the remaining fetches are cancelled and awaited
        before the error propagates, so no request outlives the cycle.
        """
        tasks = [
            asyncio.create_task(self.transport.fetch(url, decoder))
            for url, decoder in requests
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    def _publish(self, snapshot: Snapshot) -> None:
        self._snapshot = snapshot
        self._detector.record(snapshot.composed_at)
        self._feed.publish(snapshot)
        logger.info(
            "Published config snapshot",
            composed_at=snapshot.composed_at,
            markets=len(snapshot.markets_by_address),
            subscribers=self._feed.subscriber_count,
        )

    def updates(self, replay_current: bool = False) -> Subscription[Snapshot]:
        """Subscribe to newly published snapshots.

        Args:
            replay_current: Deliver the current snapshot first

        Returns:
            Subscription yielding each later snapshot
        """
        return self._feed.subscribe(self._snapshot if replay_current else None)

    # -------------------------
    # Snapshot access
    # -------------------------
    @property
    def snapshot(self) -> Snapshot:
        """Current snapshot.

        Raises:
            ConfigUnavailable: Before the first successful fetch
        """
        snapshot = self._snapshot
        if snapshot is None:
            raise ConfigUnavailable()
        return snapshot

    def get_config(self) -> AppConfig:
        return self.snapshot.config

    def get_assets(self) -> list[Asset]:
        return list(self.snapshot.assets)

    def get_asset_configs(self) -> list[AssetConfig]:
        return list(self.snapshot.asset_configs)

    def get_schedules(self) -> dict[str, AssetSchedule]:
        return dict(self.snapshot.schedules)

    def get_schedule(self, asset_name: str) -> AssetSchedule | None:
        return self.snapshot.schedules.get(asset_name)

    # Markets
    def has_market_by_address(self, address: str) -> bool:
        return address in self.snapshot.markets_by_address

    def get_market_by_address(self, address: str) -> Market | None:
        return self.snapshot.markets_by_address.get(address)

    def has_prelaunch_market_by_address(self, address: str) -> bool:
        return address in self.snapshot.prelaunch_markets_by_address

    def get_prelaunch_market_by_address(self, address: str) -> Market | None:
        return self.snapshot.prelaunch_markets_by_address.get(address)

    def get_markets_addresses(self) -> list[str]:
        return list(self.snapshot.markets_by_address)

    def get_markets_by_asset_name(self, name: str) -> list[Market]:
        return list(self.snapshot.markets_by_base_asset.get(name, ()))

    # Vaults
    def has_vault_by_address(self, address: str) -> bool:
        return address in self.snapshot.vaults_by_address

    def get_vault_by_address(self, address: str) -> Vault | None:
        return self.snapshot.vaults_by_address.get(address)

    def has_vault_by_collateral_asset_name(self, name: str) -> bool:
        return name in self.snapshot.vaults_by_collateral_asset_name

    def get_vault_by_collateral_asset_name(self, name: str) -> Vault | None:
        return self.snapshot.vaults_by_collateral_asset_name.get(name)

    def has_vault_by_collateral_asset_id(self, asset_id: str) -> bool:
        return asset_id in self.snapshot.vaults_by_collateral_asset_id

    def get_vault_by_collateral_asset_id(self, asset_id: str) -> Vault | None:
        return self.snapshot.vaults_by_collateral_asset_id.get(asset_id)

    def has_vault_by_lp_jetton_master_address(self, address: str) -> bool:
        return address in self.snapshot.vaults_by_lp_jetton_master

    def get_vault_by_lp_jetton_master_address(self, address: str) -> Vault | None:
        return self.snapshot.vaults_by_lp_jetton_master.get(address)

    # Assets
    def has_asset_by_name(self, name: str) -> bool:
        return name in self.snapshot.assets_by_name

    def get_asset_by_name(self, name: str) -> Asset | None:
        return self.snapshot.assets_by_name.get(name)

    def has_asset_by_index(self, index: int) -> bool:
        return index in self.snapshot.assets_by_index

    def get_asset_by_index(self, index: int) -> Asset | None:
        return self.snapshot.assets_by_index.get(index)

    # Asset configs
    def has_asset_config_by_name(self, name: str) -> bool:
        return name in self.snapshot.asset_configs_by_name

    def get_asset_config_by_name(self, name: str) -> AssetConfig | None:
        return self.snapshot.asset_configs_by_name.get(name)

    def has_asset_config_by_index(self, index: int) -> bool:
        return index in self.snapshot.asset_configs_by_index

    def get_asset_config_by_index(self, index: int) -> AssetConfig | None:
        return self.snapshot.asset_configs_by_index.get(index)

    def get_asset_configs_by_provider(self, provider: str) -> list[AssetConfig]:
        return list(self.snapshot.asset_configs_by_provider.get(provider, ()))

    def is_lazer(self, asset_name: str) -> bool:
        """True if the asset is priced by a low-latency oracle provider."""
        return asset_name in self.snapshot.fast_price_assets

    # Collateral assets
    def has_collateral_asset_by_name(self, name: str) -> bool:
        return name in self.snapshot.collateral_assets_by_name

    def get_collateral_asset_by_name(self, name: str) -> CollateralAsset | None:
        return self.snapshot.collateral_assets_by_name.get(name)

    # VPI
    def get_vpi_params_at_timestamp(
        self, asset_name: str, ts: int
    ) -> VPIParamsParsed | None:
        """VPI params in effect at ts: the latest entry recorded at or before ts."""
        history = self.snapshot.vpi_history.get(asset_name)
        if history is None:
            return None
        return history.at(ts)
