"""Base Pydantic model configuration for layertrust models.

All layertrust models inherit from LayerTrustBaseModel to ensure consistent behavior:
- Immutability (frozen=True): a layer never changes after it is signed
- Strict validation (extra="forbid") to catch typos and invalid fields
- Flexible field naming (populate_by_name=True) for alias support
"""

from pydantic import BaseModel, ConfigDict


class LayerTrustBaseModel(BaseModel):
    """Base model for all layertrust entities.

    Example:
        >>> class MyModel(LayerTrustBaseModel):
        ...     name: str
        >>> obj = MyModel(name="test")
        >>> obj.name = "other"  # Raises ValidationError (frozen)
        Traceback (most recent call last):
        ...
        pydantic_core._pydantic_core.ValidationError: ...
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        use_enum_values=False,
        validate_default=True,
        validate_assignment=True,
        json_schema_extra={
            "additionalProperties": False,
        },
    )
