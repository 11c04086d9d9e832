# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""ORM models for the progress store."""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base of the progress database."""


class ProgressStateRow(Base):
    """One serialised ProgressState per (student, objective).

    The full state is kept as JSON; version and updated_at are columns so
    stale writes can be detected without decoding the payload.
    """

    __tablename__ = "progress_states"

    student_ref: Mapped[str] = mapped_column(String(128), primary_key=True)
    objective_id: Mapped[str] = mapped_column(String(255), primary_key=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    __table_args__ = (Index("idx_progress_states_student", "student_ref"),)

    def __repr__(self) -> str:
        return f"<ProgressStateRow objective={self.objective_id} version={self.version}>"
