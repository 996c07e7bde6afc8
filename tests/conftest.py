"""Shared fixtures: a small but complete discovery service payload."""

import copy

import pytest

BASE_URL = "http://localhost:55824/config"


APP_CONFIG = {
    "composedAt": "2024-05-01T10:00:00.000Z",
    "assets": [
        {"name": "USDT", "decimals": 6, "assetId": "usdt-id"},
        {"name": "TON", "decimals": 9, "assetId": "ton-id"},
    ],
    "openedMarkets": [
        {
            "name": "LTC/USDT",
            "ticker": "LTC",
            "address": "EQ-ltc-usdt",
            "vaultAddress": "EQ-vault-usdt",
            "imageLink": "https://img/ltc.png",
            "quoteAsset": "USDT",
            "quoteAssetId": "usdt-id",
            "baseAsset": "LTC",
            "settlementToken": "USDT",
            "tags": ["crypto"],
            "type": "crypto",
        },
        {
            "name": "LTC/TON",
            "ticker": "LTC",
            "address": "EQ-ltc-ton",
            "vaultAddress": "EQ-vault-ton",
            "quoteAsset": "TON",
            "quoteAssetId": "ton-id",
            "baseAsset": "LTC",
            "settlementToken": "TON",
            "tags": [],
            "type": "crypto",
        },
        {
            "name": "NEW/USDT",
            "ticker": "NEW",
            "address": "EQ-new-usdt",
            "vaultAddress": "EQ-vault-usdt",
            "quoteAsset": "USDT",
            "quoteAssetId": "usdt-id",
            "baseAsset": "NEW",
            "settlementToken": "USDT",
            "type": "prelaunch",
        },
    ],
    "liquiditySources": [
        {
            "asset": {"name": "USDT", "decimals": 6, "assetId": "usdt-id"},
            "vaultAddress": "EQ-vault-usdt",
            "quoteAssetId": "usdt-id",
            "lpJettonMaster": "EQ-lp-usdt",
        },
        {
            "asset": {"name": "TON", "decimals": 9, "assetId": "ton-id"},
            "vaultAddress": "EQ-vault-ton",
            "quoteAssetId": "ton-id",
            "lpJettonMaster": "EQ-lp-ton",
        },
    ],
}

ASSETS = [
    {"name": "BTC", "index": 0, "type": "crypto"},
    {"name": "LTC", "index": 11, "type": "crypto"},
    {"name": "EURUSD", "index": 25, "type": "forex"},
    {"name": "NEW", "index": 40, "type": "crypto"},
]

ASSETS_SCHEDULE = {
    "schedules": {
        "EURUSD": {
            "scheduleTimeZone": "America/New_York",
            "schedule": "0-4:17:00-24:00",
            "holidays": "2024-12-25",
        },
        "BTC": {"schedule": "", "holidays": ""},
    }
}

ASSETS_CONFIG = [
    {
        "index": 0,
        "name": "BTC",
        "type": "crypto",
        "description": "Bitcoin",
        "vpi": {
            "marketDepthLong": "1000000000",
            "marketDepthShort": "1000000000",
            "spread": "100",
            "k": "2",
        },
        "oracles": [{"provider": "pyth-lazer"}, {"provider": "pyth"}],
    },
    {
        "index": 11,
        "name": "LTC",
        "type": "crypto",
        "description": "Litecoin",
        "oracles": [{"provider": "pyth"}],
    },
    {
        "index": 25,
        "name": "EURUSD",
        "type": "forex",
        "description": "Euro / US Dollar",
        "scheduleTimeZone": "America/New_York",
        "schedule": "0-4:17:00-24:00",
        "holidays": "2024-12-25",
        "oracles": [{"provider": "stork-fast"}],
    },
]

VPI_HISTORY = {
    "BTC": {
        "1714550400": {
            "marketDepthLong": "1000",
            "marketDepthShort": "1100",
            "spread": "10",
            "k": "1",
        },
        "1714464000": {
            "marketDepthLong": "900",
            "marketDepthShort": "950",
            "spread": "12",
            "k": "1",
        },
        "1714636800": {
            "marketDepthLong": "",
            "marketDepthShort": "",
            "spread": "",
            "k": "",
        },
    },
    "LTC": {
        "1714550400": {
            "marketDepthLong": "123456789012345678901234567890",
            "marketDepthShort": "5",
            "spread": "-3",
            "k": "0",
        }
    },
}


@pytest.fixture
def app_config_payload():
    """Root /config document."""
    return copy.deepcopy(APP_CONFIG)


@pytest.fixture
def assets_payload():
    """/assets document."""
    return copy.deepcopy(ASSETS)


@pytest.fixture
def assets_schedule_payload():
    """/assets-schedule document."""
    return copy.deepcopy(ASSETS_SCHEDULE)


@pytest.fixture
def assets_config_payload():
    """/assets-config document."""
    return copy.deepcopy(ASSETS_CONFIG)


@pytest.fixture
def vpi_history_payload():
    """/vpi-history document."""
    return copy.deepcopy(VPI_HISTORY)


@pytest.fixture
def base_url():
    """Discovery service base URL used by HTTP tests."""
    return BASE_URL
