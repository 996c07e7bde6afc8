"""Immutable indexed snapshot of the discovery config."""

from collections.abc import Hashable, Iterable, Mapping
from types import MappingProxyType
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..core.types import (
    FAST_PRICE_PROVIDERS,
    AppConfig,
    Asset,
    AssetConfig,
    AssetSchedule,
    CollateralAsset,
    Market,
    VPIParams,
    Vault,
)
from .vpi import VPIHistory, parse_vpi_history

logger = structlog.get_logger(__name__)


class Snapshot(BaseModel):
    """One generation of the discovery config with its lookup indexes.

    Every index points into the collections of the same snapshot. A snapshot
    is never modified after it is built; refreshes build a new one. Fields
    cannot be reassigned and the mappings are read-only views.
    """

    model_config = ConfigDict(frozen=True, validate_default=True)

    config: AppConfig
    assets: tuple[Asset, ...] = ()
    asset_configs: tuple[AssetConfig, ...] = ()
    schedules: Mapping[str, AssetSchedule] = Field(default_factory=dict)
    vpi_history: Mapping[str, VPIHistory] = Field(default_factory=dict)

    vaults_by_address: Mapping[str, Vault] = Field(default_factory=dict)
    vaults_by_collateral_asset_name: Mapping[str, Vault] = Field(default_factory=dict)
    vaults_by_collateral_asset_id: Mapping[str, Vault] = Field(default_factory=dict)
    vaults_by_lp_jetton_master: Mapping[str, Vault] = Field(default_factory=dict)

    markets_by_address: Mapping[str, Market] = Field(default_factory=dict)
    prelaunch_markets_by_address: Mapping[str, Market] = Field(default_factory=dict)
    markets_by_base_asset: Mapping[str, tuple[Market, ...]] = Field(
        default_factory=dict
    )

    collateral_assets_by_name: Mapping[str, CollateralAsset] = Field(
        default_factory=dict
    )

    assets_by_name: Mapping[str, Asset] = Field(default_factory=dict)
    assets_by_index: Mapping[int, Asset] = Field(default_factory=dict)

    asset_configs_by_name: Mapping[str, AssetConfig] = Field(default_factory=dict)
    asset_configs_by_index: Mapping[int, AssetConfig] = Field(default_factory=dict)
    asset_configs_by_provider: Mapping[str, tuple[AssetConfig, ...]] = Field(
        default_factory=dict
    )

    fast_price_assets: frozenset[str] = frozenset()

    @field_validator("*", mode="after")
    @classmethod
    def read_only(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return MappingProxyType(value)
        return value

    @property
    def composed_at(self) -> str:
        return self.config.composed_at


def _put(index: dict[Any, Any], key: Hashable, value: Any, index_name: str) -> None:
    # Last write wins; upstream is expected to keep these keys unique.
    if key == "":
        return
    previous = index.get(key)
    if previous is not None and previous != value:
        logger.warning("Duplicate index key", index=index_name, key=key)
    index[key] = value


def _group(items: Iterable[tuple[str, Any]]) -> dict[str, tuple[Any, ...]]:
    grouped: dict[str, list[Any]] = {}
    for key, value in items:
        grouped.setdefault(key, []).append(value)
    return {key: tuple(values) for key, values in grouped.items()}


def build_snapshot(
    config: AppConfig,
    assets: Iterable[Asset] = (),
    asset_configs: Iterable[AssetConfig] = (),
    schedules: Mapping[str, AssetSchedule] | None = None,
    vpi_history: Mapping[str, Mapping[str, VPIParams]] | None = None,
) -> Snapshot:
    """Build a snapshot and all of its indexes.

    Args:
        config: Root app config
        assets: Contents of /assets
        asset_configs: Contents of /assets-config
        schedules: Schedules from /assets-schedule, keyed by asset name
        vpi_history: Contents of /vpi-history

    Returns:
        Fully indexed Snapshot

    Raises:
        ParseError: If the VPI history holds malformed numbers
    """
    assets = tuple(assets)
    asset_configs = tuple(asset_configs)

    # Parse first so a bad VPI entry fails before any indexing work.
    history = parse_vpi_history(vpi_history or {})

    vaults_by_address: dict[str, Vault] = {}
    vaults_by_collateral_asset_name: dict[str, Vault] = {}
    vaults_by_collateral_asset_id: dict[str, Vault] = {}
    vaults_by_lp_jetton_master: dict[str, Vault] = {}
    for v in config.vaults:
        _put(vaults_by_address, v.vault_address, v, "vaults_by_address")
        _put(
            vaults_by_collateral_asset_name,
            v.asset.name,
            v,
            "vaults_by_collateral_asset_name",
        )
        _put(
            vaults_by_collateral_asset_id,
            v.asset.asset_id,
            v,
            "vaults_by_collateral_asset_id",
        )
        _put(
            vaults_by_lp_jetton_master,
            v.lp_jetton_master,
            v,
            "vaults_by_lp_jetton_master",
        )

    markets_by_address: dict[str, Market] = {}
    prelaunch_markets_by_address: dict[str, Market] = {}
    for m in config.markets:
        _put(markets_by_address, m.address, m, "markets_by_address")
        if m.is_prelaunch:
            _put(
                prelaunch_markets_by_address,
                m.address,
                m,
                "prelaunch_markets_by_address",
            )
    markets_by_base_asset = _group((m.base_asset, m) for m in config.markets)

    collateral_assets_by_name: dict[str, CollateralAsset] = {}
    for a in config.collateral_assets:
        _put(collateral_assets_by_name, a.name, a, "collateral_assets_by_name")

    assets_by_name: dict[str, Asset] = {}
    assets_by_index: dict[int, Asset] = {}
    for a in assets:
        _put(assets_by_name, a.name, a, "assets_by_name")
        _put(assets_by_index, a.index, a, "assets_by_index")

    asset_configs_by_name: dict[str, AssetConfig] = {}
    asset_configs_by_index: dict[int, AssetConfig] = {}
    for c in asset_configs:
        _put(asset_configs_by_name, c.name, c, "asset_configs_by_name")
        _put(asset_configs_by_index, c.index, c, "asset_configs_by_index")
    # Follows the config that won the by-name index.
    fast_price_assets = frozenset(
        name
        for name, c in asset_configs_by_name.items()
        if any(o.provider in FAST_PRICE_PROVIDERS for o in c.oracles)
    )
    asset_configs_by_provider = _group(
        (o.provider, c) for c in asset_configs for o in c.oracles
    )

    snapshot = Snapshot(
        config=config,
        assets=assets,
        asset_configs=asset_configs,
        schedules=dict(schedules or {}),
        vpi_history=history,
        vaults_by_address=vaults_by_address,
        vaults_by_collateral_asset_name=vaults_by_collateral_asset_name,
        vaults_by_collateral_asset_id=vaults_by_collateral_asset_id,
        vaults_by_lp_jetton_master=vaults_by_lp_jetton_master,
        markets_by_address=markets_by_address,
        prelaunch_markets_by_address=prelaunch_markets_by_address,
        markets_by_base_asset=markets_by_base_asset,
        collateral_assets_by_name=collateral_assets_by_name,
        assets_by_name=assets_by_name,
        assets_by_index=assets_by_index,
        asset_configs_by_name=asset_configs_by_name,
        asset_configs_by_index=asset_configs_by_index,
        asset_configs_by_provider=asset_configs_by_provider,
        fast_price_assets=fast_price_assets,
    )

    logger.debug(
        "Built config snapshot",
        composed_at=config.composed_at,
        markets=len(markets_by_address),
        vaults=len(vaults_by_address),
        assets=len(assets_by_name),
        asset_configs=len(asset_configs_by_name),
        vpi_assets=len(history),
    )
    return snapshot
