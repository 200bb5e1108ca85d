"""Decode outcomes shared by the CSV and payload decoders."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .model import TableModel

logger = logging.getLogger(__name__)


class TableFormatError(ValueError):
    """Structural problem that makes a table impossible to decode (or encode)."""


@dataclass(slots=True)
class Diagnostic:
    code: str
    subject: str
    message: str

    def __str__(self) -> str:
        return f"[{self.code}] {self.subject}: {self.message}"


@dataclass(slots=True)
class DecodeCounts:
    entities: int = 0
    columns: int = 0
    cells: int = 0
    skipped: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "entities": self.entities,
            "columns": self.columns,
            "cells": self.cells,
            "skipped": self.skipped,
        }


@dataclass(slots=True)
class DecodeResult:
    model: TableModel
    diagnostics: list[Diagnostic] = field(default_factory=list)
    counts: DecodeCounts = field(default_factory=DecodeCounts)

    def skip(self, code: str, subject: str, message: str) -> None:
        """Record a dropped item; decoding carries on with the rest."""

        diagnostic = Diagnostic(code=code, subject=subject, message=message)
        self.diagnostics.append(diagnostic)
        self.counts.skipped += 1
        logger.warning("%s", diagnostic)

    @property
    def ok(self) -> bool:
        return not self.diagnostics
