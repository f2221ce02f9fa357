from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, PlainSerializer

from app.utils.date_ranges import to_iso, to_naive_utc

# Naive UTC on the way in, millisecond ISO strings on the way out to JSON/DynamoDB.
UTCDateTime = Annotated[
    datetime,
    AfterValidator(to_naive_utc),
    PlainSerializer(to_iso, return_type=str, when_used="json"),
]
