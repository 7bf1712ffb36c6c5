from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator

from edtriage.domain.calculations.durations import to_utc

UtcDatetime = Annotated[datetime, AfterValidator(to_utc)]
