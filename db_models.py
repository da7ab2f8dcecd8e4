"""
Relational schema for metric samples, learned baselines and detected anomalies.
"""
from __future__ import annotations

from datetime import datetime
from sqlalchemy import DateTime, Float, Index, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# stored in place of NULL for the overall bucket so the unique key covers it
NO_BUCKET = -1


class Base(DeclarativeBase):
    pass


class MetricSample(Base):
    __tablename__ = "metric_sample"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instance_id: Mapped[str] = mapped_column(String(128), nullable=False)
    metric_name: Mapped[str] = mapped_column(String(128), nullable=False)
    sampled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)

    __table_args__ = (
        Index("ix_metric_sample_instance_metric_time", "instance_id", "metric_name", "sampled_at"),
    )


class MetricBaselineRow(Base):
    __tablename__ = "metric_baseline"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instance_id: Mapped[str] = mapped_column(String(128), nullable=False)
    metric_name: Mapped[str] = mapped_column(String(128), nullable=False)
    metric_category: Mapped[str] = mapped_column(String(32), nullable=False)
    baseline_mean: Mapped[float] = mapped_column(Float, nullable=False)
    baseline_stddev: Mapped[float] = mapped_column(Float, nullable=False)
    baseline_min: Mapped[float | None] = mapped_column(Float, nullable=True)
    baseline_max: Mapped[float | None] = mapped_column(Float, nullable=True)
    baseline_median: Mapped[float | None] = mapped_column(Float, nullable=True)
    baseline_p95: Mapped[float | None] = mapped_column(Float, nullable=True)
    baseline_p99: Mapped[float | None] = mapped_column(Float, nullable=True)
    sample_count: Mapped[int] = mapped_column(Integer, nullable=False)
    hour_of_day: Mapped[int] = mapped_column(Integer, nullable=False, default=NO_BUCKET)
    day_of_week: Mapped[int] = mapped_column(Integer, nullable=False, default=NO_BUCKET)
    calculated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    period_start: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    period_end: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint(
            "instance_id", "metric_name", "metric_category", "hour_of_day", "day_of_week",
            name="uq_metric_baseline_bucket",
        ),
        Index("ix_metric_baseline_instance_metric", "instance_id", "metric_name"),
        Index("ix_metric_baseline_instance_category", "instance_id", "metric_category"),
    )


class DetectedAnomalyRow(Base):
    __tablename__ = "detected_anomaly"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    instance_id: Mapped[str] = mapped_column(String(128), nullable=False)
    metric_name: Mapped[str] = mapped_column(String(128), nullable=False)
    metric_category: Mapped[str] = mapped_column(String(32), nullable=False)
    detected_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    anomaly_value: Mapped[float] = mapped_column(Float, nullable=False)
    baseline_mean: Mapped[float] = mapped_column(Float, nullable=False)
    baseline_stddev: Mapped[float] = mapped_column(Float, nullable=False)
    deviation_sigma: Mapped[float] = mapped_column(Float, nullable=False)
    severity: Mapped[str] = mapped_column(String(16), nullable=False)
    anomaly_type: Mapped[str] = mapped_column(String(24), nullable=False)
    direction: Mapped[str] = mapped_column(String(8), nullable=False)
    root_cause_suggestion: Mapped[str | None] = mapped_column(Text, nullable=True)
    acknowledged_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    acknowledged_by: Mapped[str | None] = mapped_column(String(128), nullable=True)
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    resolution_notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    __table_args__ = (
        Index("ix_detected_anomaly_instance_time", "instance_id", "detected_at"),
        Index("ix_detected_anomaly_instance_resolved", "instance_id", "resolved_at"),
        Index("ix_detected_anomaly_severity_time", "severity", "detected_at"),
    )
