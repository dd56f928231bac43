"""
Abstract base for ingredient score tables.

A table answers one question: which rows have a name that contains this
ingredient (case-insensitive)? Backends cap how many rows they return, so
they rank before cutting: a row named exactly like the ingredient must
always survive the cap. The final choice among candidates is the scorer's.
Tables are read-only from the pipeline's point of view.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ScoreRow:
    ingredient_name: str    # "Ingredient Name" column
    score: float            # "Score" column

    @classmethod
    def from_record(cls, record: dict) -> "ScoreRow":
        return cls(ingredient_name=str(record["Ingredient Name"]), score=float(record["Score"]))


class IngredientScoreTable(ABC):

    @abstractmethod
    async def candidates(self, ingredient: str) -> list[ScoreRow]:
        """Rows whose name contains `ingredient`, case-insensitive, exact names first."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable backend name for logs."""
        ...
