"""Tests for chain configuration defaults."""

import dataclasses

from aggregator.config import ChainConfig, mainnet_config
from tests.helpers import DAI, WETH


class TestConnector:
    def test_defaults_to_base_asset(self):
        assert ChainConfig(base_asset=WETH.upper().replace("0X", "0x")).connector == WETH

    def test_explicit_connector_wins(self):
        config = dataclasses.replace(mainnet_config(), connector_token=DAI)
        assert config.connector == DAI
