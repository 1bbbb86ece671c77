"""
Feature extraction: raw wallet data -> bounded, normalized feature vectors.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ValidationError
from ..secure_logging import get_secure_logger
from ..validation import NumericValidator, WalletAddressValidator
from .features import DEFAULT_SCHEMA, FeatureSchema
from .models import FeatureVector, WalletData

logger = get_secure_logger(__name__)

RawWallet = Union[WalletData, Mapping[str, Any]]

WALLET_FIELD_ALIASES = {f.alias: name for name, f in WalletData.model_fields.items() if f.alias}


class FeatureExtractor:
    """
    Maps raw per-wallet behavioral data onto the feature schema.

    Missing data never raises: an absent or null value falls back to the
    feature default and is recorded in ``missing_features``, which in turn
    lowers ``data_quality``. A value that is present but not numeric raises
    ``ValidationError``.
    """

    def __init__(self, schema: Optional[FeatureSchema] = None):
        self.schema = schema or DEFAULT_SCHEMA

    def extract(self, raw: RawWallet) -> FeatureVector:
        """
        Extract a feature vector from one wallet record.

        Args:
            raw: WalletData, or any mapping with an ``address`` key and
                feature values keyed by feature name (camelCase keys are
                accepted for the built-in features)

        Returns:
            FeatureVector with clamped and normalized values
        """
        address, values = self._raw_values(raw)

        features: Dict[str, float] = {}
        normalized: Dict[str, float] = {}
        missing = set()

        for definition in self.schema:
            value = NumericValidator.coerce_feature_value(definition.name, values.get(definition.name))
            if value is None:
                clamped = definition.default_value
                missing.add(definition.name)
            else:
                clamped = definition.clamp(value)

            features[definition.name] = clamped
            normalized[definition.name] = definition.normalize_value(clamped)

        data_quality = 1.0 - len(missing) / len(self.schema) if len(self.schema) else 0.0

        if missing:
            logger.debug("features_defaulted",
                         wallet_address=address,
                         missing=len(missing),
                         data_quality=round(data_quality, 3))

        return FeatureVector(
            wallet_address=address,
            features=features,
            normalized_features=normalized,
            extracted_at=datetime.now(timezone.utc),
            data_quality=data_quality,
            missing_features=frozenset(missing),
        )

    def extract_batch(self, raws: Iterable[RawWallet]) -> List[FeatureVector]:
        """Extract feature vectors for multiple wallets, preserving order."""
        vectors = [self.extract(raw) for raw in raws]
        if vectors:
            avg_quality = sum(v.data_quality for v in vectors) / len(vectors)
            logger.info("features_extracted", wallet_count=len(vectors), avg_data_quality=round(avg_quality, 3))
        return vectors

    def _raw_values(self, raw: RawWallet):
        if isinstance(raw, WalletData):
            return raw.address, raw.feature_values()

        data = dict(raw)
        address = WalletAddressValidator.validate(data.pop('address', data.pop('wallet_address', None)))

        # Built-in features may arrive under their camelCase aliases
        try:
            wallet = WalletData.model_validate({'address': address, **data})
        except PydanticValidationError as e:
            error = e.errors()[0]
            field_name = str(error['loc'][0]) if error.get('loc') else 'wallet'
            field_name = WALLET_FIELD_ALIASES.get(field_name, field_name)
            raise ValidationError(field_name, error.get('input'), "Feature value is not numeric") from e
        values: Dict[str, Any] = {k: v for k, v in wallet.feature_values().items() if v is not None}

        # Custom schema features are read by name
        for name in self.schema.names:
            if name not in values and name in data:
                values[name] = data[name]

        return address, values
