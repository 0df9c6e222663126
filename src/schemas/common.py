"""Shared schema types."""
from decimal import Decimal
from typing import Annotated

from pydantic import PlainSerializer


# Monetary values are exact Decimals internally and JSON numbers on the wire.
Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]
