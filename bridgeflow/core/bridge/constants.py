"""Constants and metadata for bridge orchestration."""

from typing import Dict, Literal

GardenNetwork = Literal["sepolia", "mainnet"]

SUPPORTED_NETWORKS = ("sepolia", "mainnet")

# Garden asset identifiers use the chain:token format
GARDEN_ASSETS: Dict[str, Dict[str, str]] = {
    "sepolia": {
        "btc": "bitcoin_testnet:btc",
        "wbtc": "starknet_sepolia:wbtc",
    },
    "mainnet": {
        "btc": "bitcoin:btc",
        "wbtc": "starknet:wbtc",
    },
}

NULL_ADDRESS = "0x0"

# BTC-backed ERC20s on Starknet; "0x0" marks a token not deployed on that network
STARKNET_BTC_TOKENS: Dict[str, Dict[str, str]] = {
    "sepolia": {
        "wBTC": "0x00452bd5c0512a61df7c7be8cfea5e4f893cb40e126bdc40aee6054db955129e",
        "LBTC": NULL_ADDRESS,
        "tBTC": NULL_ADDRESS,
        "SolvBTC": NULL_ADDRESS,
    },
    "mainnet": {
        "wBTC": "0x03fe2b97c1fd336e750087d68b9b867997fd64a2661ff3ca5a7c771641e8e7ac",
        "LBTC": "0x036834a40984312f7f7de8d31e3f6305b325389eaeea5b1c0664b2fb936461a4",
        "tBTC": "0x04daa17763b286d1e59b97c283c0b8c949994c361e426a28f743c67bdfe9a32f",
        "SolvBTC": "0x0593e034dda23eea82d2ba9a30960ed42cf4a01502cc2351dc9b9881f9931a68",
    },
}

# Rough BTC block time used for confirmation ETAs
BTC_BLOCK_TIME_SECONDS = 600

BRIDGE_SOURCE = {"name": "Garden Finance", "url": "https://garden.finance"}


def normalize_network(network: str) -> str:
    value = (network or "").strip().lower()
    if value not in SUPPORTED_NETWORKS:
        raise ValueError(f"Unsupported Garden network {network!r}; expected one of {SUPPORTED_NETWORKS}")
    return value
