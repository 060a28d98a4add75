from __future__ import annotations

from functools import cached_property
from typing import Any

from .aws import ddb
from .settings import require


class Tables:
    """Table handles resolved on first use so a missing name fails at the call site."""

    @cached_property
    def pantry(self) -> Any:
        return ddb().Table(require("pantry_table"))

    @cached_property
    def grocery(self) -> Any:
        return ddb().Table(require("grocery_table"))


T = Tables()
