import datetime
from typing import Any, Sequence

import pandas as pd
from sqlmodel import Field, Session, SQLModel

from carbon_registry.core.models.base import utc_datetime_now


class LedgerRecord(SQLModel):
    created_at: datetime.datetime = Field(
        default_factory=utc_datetime_now, nullable=False
    )

    @classmethod
    def exists(cls, id_: Any, session: Session) -> bool:
        # 0 and the empty identity are reserved sentinels, never stored keys
        if id_ is None or id_ == 0 or id_ == "":
            return False
        return session.get(cls, id_) is not None


def records_to_dataframe(
    records: Sequence[SQLModel], columns: list[str] | None = None
) -> pd.DataFrame:
    """Flatten ledger records into a DataFrame, one row per record."""
    rows = [record.model_dump() for record in records]
    return pd.DataFrame(rows, columns=columns)


def dataframe_to_csv(df: pd.DataFrame) -> str:
    return df.to_csv(index=False)
