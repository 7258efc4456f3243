# hovenier/models/counter.py
from __future__ import annotations

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from hovenier.db import Base


class NumberCounter(Base):
    """Laatst uitgegeven volgnummer per soort (offerte/factuur) per jaar."""

    __tablename__ = "number_counters"

    kind: Mapped[str] = mapped_column(String(16), primary_key=True)
    year: Mapped[int] = mapped_column(Integer, primary_key=True)
    value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
