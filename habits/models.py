from __future__ import annotations
from typing import TYPE_CHECKING

from django.db import models

from habits.types import RecordStatus


class Habit(models.Model):
    name = models.TextField()
    created_at = models.DateTimeField(db_column="createdAt")
    deleted_at = models.DateField(db_column="deletedAt", null=True, blank=True)
    scheduled_time = models.CharField(db_column="scheduledTime", max_length=5, null=True, blank=True)
    is_critical = models.BooleanField(db_column="isCritical", default=False)

    class Meta:
        db_table = "habits"
        ordering = ["created_at", "id"]

    if TYPE_CHECKING:
        # Django dynamically injects this via related_name="records"
        records = None

    def __str__(self) -> str:
        return self.name


class HabitRecord(models.Model):
    habit = models.ForeignKey(
        Habit,
        on_delete=models.CASCADE,
        related_name="records",
        db_column="habitId",
        db_index=False,
    )
    date = models.DateField()
    status = models.CharField(max_length=10, choices=RecordStatus.choices, default=RecordStatus.PENDING)
    duration_minutes = models.PositiveIntegerField(db_column="durationMinutes", null=True, blank=True)
    completion_time = models.CharField(db_column="completionTime", max_length=5, null=True, blank=True)

    class Meta:
        db_table = "habit_records"
        constraints = [
            models.UniqueConstraint(fields=["habit", "date"], name="unique_record_per_habit_per_day")
        ]
        indexes = [
            models.Index(fields=["date"], name="idx_habit_records_date"),
            models.Index(fields=["habit"], name="idx_habit_records_habitId"),
        ]

    def __str__(self) -> str:
        return f"{self.habit_id} @ {self.date}: {self.status}"
