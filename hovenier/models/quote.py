# hovenier/models/quote.py
from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import JSON, BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from hovenier.db import Base


class QuoteRecord(Base):
    __tablename__ = "quotes"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    number: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(String(32), index=True, nullable=False)

    # publieke deellink
    share_token: Mapped[Optional[str]] = mapped_column(String(255), index=True, nullable=True)

    archived_at: Mapped[Optional[int]] = mapped_column(BigInteger, nullable=True)
    updated_at: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    # volledige Quote.to_dict()
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return f"<QuoteRecord id={self.id} number={self.number} status={self.status}>"
