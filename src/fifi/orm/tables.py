"""SQLAlchemy 2.0 table definitions for playbook runs.

::

    playbook_runs 1──* playbook_run_executors 1──* playbook_run_systems

Usage::

    from fifi.orm import FifiBase, create_fifi_engine

    engine = create_fifi_engine("sqlite:///fifi.db")
    FifiBase.metadata.create_all(engine)
"""

from __future__ import annotations

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fifi.orm.base import FifiBase, TimestampMixin


class PlaybookRunTable(TimestampMixin, FifiBase):
    __tablename__ = "playbook_runs"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)
    remediation_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    created_by: Mapped[str] = mapped_column(Text, nullable=False)

    # --- relationships ---
    executors: Mapped[list[PlaybookRunExecutorTable]] = relationship(
        "PlaybookRunExecutorTable", back_populates="run", cascade="all, delete-orphan"
    )


class PlaybookRunExecutorTable(TimestampMixin, FifiBase):
    __tablename__ = "playbook_run_executors"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    executor_id: Mapped[str] = mapped_column(Text, nullable=False)
    executor_name: Mapped[str | None] = mapped_column(Text)
    receptor_node_id: Mapped[str] = mapped_column(Text, nullable=False)
    receptor_job_id: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)
    playbook: Mapped[str] = mapped_column(Text, nullable=False)
    text_update_full: Mapped[bool] = mapped_column(Boolean, nullable=False)
    text_update_interval: Mapped[int] = mapped_column(Integer, nullable=False)
    playbook_run_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("playbook_runs.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # --- relationships ---
    run: Mapped[PlaybookRunTable] = relationship("PlaybookRunTable", back_populates="executors")
    systems: Mapped[list[PlaybookRunSystemTable]] = relationship(
        "PlaybookRunSystemTable", back_populates="executor", cascade="all, delete-orphan"
    )


class PlaybookRunSystemTable(TimestampMixin, FifiBase):
    __tablename__ = "playbook_run_systems"

    id: Mapped[str] = mapped_column(Text, primary_key=True)
    system_id: Mapped[str] = mapped_column(Text, nullable=False)
    system_name: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(Text, default="pending", nullable=False)
    playbook_run_executor_id: Mapped[str] = mapped_column(
        Text,
        ForeignKey("playbook_run_executors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # --- relationships ---
    executor: Mapped[PlaybookRunExecutorTable] = relationship(
        "PlaybookRunExecutorTable", back_populates="systems"
    )
