from .interfaces import ECPoint, StarknetAccount, StealthAddressDeriver, normalize_signature

__all__ = ["ECPoint", "StarknetAccount", "StealthAddressDeriver", "normalize_signature"]
