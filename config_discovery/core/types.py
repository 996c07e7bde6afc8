"""Wire types served by the config discovery service."""

from pydantic import BaseModel, ConfigDict, Field

# Oracle providers that publish low-latency ("lazer") prices.
FAST_PRICE_PROVIDERS = frozenset({"pyth-lazer", "stork-fast", "fake"})

PRELAUNCH_MARKET_TYPE = "prelaunch"


class WireModel(BaseModel):
    """Base for immutable models decoded from camelCase JSON."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")


class Asset(WireModel):
    """Underlying instrument descriptor from the /assets endpoint."""

    name: str = Field(description="Asset symbol")
    index: int = Field(description="Numeric asset index")
    type: str = Field(default="", description="Asset class")


class OracleConfig(WireModel):
    """One oracle price source for an asset."""

    provider: str = Field(description="Oracle provider name")


class VPIParams(WireModel):
    """Variable price impact parameters as decimal strings."""

    market_depth_long: str = Field(default="", alias="marketDepthLong")
    market_depth_short: str = Field(default="", alias="marketDepthShort")
    spread: str = Field(default="")
    k: str = Field(default="")


class VPIParamsParsed(WireModel):
    """Variable price impact parameters as integers."""

    market_depth_long: int
    market_depth_short: int
    spread: int
    k: int


class AssetConfig(WireModel):
    """Operational parameters of an asset from the /assets-config endpoint."""

    index: int = Field(description="Numeric asset index")
    name: str = Field(description="Asset symbol")
    type: str = Field(default="", description="Asset class")
    description: str = Field(default="")
    vpi: VPIParams = Field(default_factory=VPIParams)
    schedule_time_zone: str = Field(default="", alias="scheduleTimeZone")
    schedule: str = Field(default="")
    holidays: str = Field(default="")
    oracles: tuple[OracleConfig, ...] = Field(default=())


class AssetSchedule(WireModel):
    """Trading schedule of one asset."""

    schedule_time_zone: str | None = Field(default=None, alias="scheduleTimeZone")
    schedule: str = Field(default="")
    holidays: str = Field(default="")


class AssetsSchedule(WireModel):
    """Response of the /assets-schedule endpoint."""

    schedules: dict[str, AssetSchedule] = Field(default_factory=dict)


class CollateralAsset(WireModel):
    """Settlement or collateral token descriptor."""

    name: str = Field(description="Token symbol")
    decimals: int = Field(default=0, description="Token decimals")
    asset_id: str = Field(default="", alias="assetId")


class Market(WireModel):
    """Opened market."""

    name: str = Field(default="")
    ticker: str = Field(default="")
    address: str = Field(description="Market contract address")
    vault_address: str = Field(default="", alias="vaultAddress")
    image_link: str = Field(default="", alias="imageLink")
    quote_asset: str = Field(default="", alias="quoteAsset")
    quote_asset_id: str = Field(default="", alias="quoteAssetId")
    base_asset: str = Field(default="", alias="baseAsset")
    settlement_token: str = Field(default="", alias="settlementToken")
    tags: tuple[str, ...] = Field(default=())
    type: str = Field(default="")

    @property
    def is_prelaunch(self) -> bool:
        return self.type == PRELAUNCH_MARKET_TYPE


class Vault(WireModel):
    """Liquidity source backing one or more markets."""

    asset: CollateralAsset = Field(description="Collateral asset of the vault")
    vault_address: str = Field(alias="vaultAddress")
    quote_asset_id: str = Field(default="", alias="quoteAssetId")
    lp_jetton_master: str = Field(default="", alias="lpJettonMaster")


class AppConfig(WireModel):
    """Root document served at the discovery base URL."""

    composed_at: str = Field(
        alias="composedAt", description="Opaque freshness token, compared for equality"
    )
    collateral_assets: tuple[CollateralAsset, ...] = Field(default=(), alias="assets")
    markets: tuple[Market, ...] = Field(default=(), alias="openedMarkets")
    vaults: tuple[Vault, ...] = Field(default=(), alias="liquiditySources")
