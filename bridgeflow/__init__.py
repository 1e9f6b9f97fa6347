"""Cross-chain BTC <-> Starknet bridge order orchestration."""

__version__ = "0.1.0"
