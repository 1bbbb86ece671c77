"""
Input validation layer for SybilScope.

Provides validation for the raw data handed to the clustering engine:
- Wallet addresses / entity identifiers
- Raw numeric feature values
"""

import math
import re
from decimal import Decimal
from typing import Any, Optional

from .exceptions import ValidationError, WalletAddressValidationError


class WalletAddressValidator:
    """Validates wallet addresses and other entity identifiers."""

    # Ethereum address pattern: 0x followed by 40 hexadecimal characters
    ETH_ADDRESS_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')

    @classmethod
    def validate(cls, address: Any) -> str:
        """
        Validate and normalize an entity identifier.

        Ethereum-style addresses are lowercased so that checksummed and plain
        spellings of the same wallet land on one identity. Any other
        non-empty string is accepted verbatim (after stripping whitespace).

        Raises:
            WalletAddressValidationError: If the identifier is not a
                non-empty string
        """
        if not isinstance(address, str):
            raise WalletAddressValidationError(
                address, f"Wallet address must be string, got {type(address).__name__}"
            )

        address = address.strip()

        if not address:
            raise WalletAddressValidationError(address, "Wallet address cannot be empty")

        if cls.ETH_ADDRESS_PATTERN.match(address):
            return address.lower()

        return address

    @classmethod
    def is_ethereum_address(cls, address: str) -> bool:
        """Check if an identifier looks like an Ethereum address."""
        return bool(isinstance(address, str) and cls.ETH_ADDRESS_PATTERN.match(address.strip()))

    @classmethod
    def is_valid(cls, address: Any) -> bool:
        """Check if address is valid without raising exception."""
        try:
            cls.validate(address)
            return True
        except ValidationError:
            return False


class NumericValidator:
    """Validates raw numeric feature values."""

    @classmethod
    def coerce_feature_value(cls, name: str, value: Any) -> Optional[float]:
        """
        Coerce a raw feature value to float.

        Missing values (None, NaN) come back as None so the caller can fall
        back to the feature default. Booleans count as 0/1.

        Raises:
            ValidationError: If the value is not numeric at all
        """
        if value is None:
            return None

        if isinstance(value, bool):
            return 1.0 if value else 0.0

        if isinstance(value, (int, float, Decimal)):
            result = float(value)
        elif isinstance(value, str):
            text = value.strip()
            if not text:
                return None
            try:
                result = float(text)
            except ValueError:
                raise ValidationError(name, value, "Feature value is not numeric")
        else:
            raise ValidationError(name, value, f"Unsupported feature value type {type(value).__name__}")

        if math.isnan(result):
            return None

        return result
