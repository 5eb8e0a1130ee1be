from typing import Self

from pydantic import RootModel

PERCENTAGE_PRECISION = 2


class LanguagePercentages(RootModel[dict[str, float]]):
    """A dictionary of language names and their share of the repository in percent."""


class LanguageUsage(RootModel[dict[str, int]]):
    """A dictionary of language names and the number of bytes of code written in them."""

    @classmethod
    def from_mapping(cls, usage: dict[str, int]) -> Self:
        return cls(root=dict(usage))

    @property
    def total(self) -> int:
        return sum(self.root.values())

    def to_percentages(self) -> LanguagePercentages:
        """Convert the byte counts to percentages rounded to two decimals. An empty or all-zero usage has no percentages."""

        total: int = self.total

        if total == 0:
            return LanguagePercentages(root={})

        return LanguagePercentages(
            root={language: round(byte_count / total * 100, PERCENTAGE_PRECISION) for language, byte_count in self.root.items()}
        )
