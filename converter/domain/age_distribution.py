from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from converter.domain.users.projection import parse_int_prefix


@dataclass(frozen=True)
class AgeBucket:
    """
    Назначение:
        Интервал возрастов [lower, upper); None означает открытую границу.
    """

    label: str
    lower: int | None
    upper: int | None

    def contains(self, age: int) -> bool:
        if self.lower is not None and age < self.lower:
            return False
        if self.upper is not None and age >= self.upper:
            return False
        return True


AGE_BUCKETS: tuple[AgeBucket, ...] = (
    AgeBucket("< 20", None, 20),
    AgeBucket("20 to 40", 20, 40),
    AgeBucket("40 to 60", 40, 60),
    AgeBucket("> 60", 60, None),
)


@dataclass(frozen=True)
class AgeGroupShare:
    age_group: str
    count: int
    percentage: str


@dataclass
class AgeDistributionReport:
    total: int = 0
    groups: list[AgeGroupShare] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "distribution": [
                {"age_group": g.age_group, "count": g.count, "percentage": g.percentage}
                for g in self.groups
            ],
        }


def format_percentage(count: int, total: int) -> str:
    if total <= 0:
        return "0"
    return f"{count / total * 100:.2f}"


def calculate_age_distribution(ages: Iterable[int]) -> AgeDistributionReport:
    """
    Назначение:
        Гистограмма возрастов по фиксированным корзинам с долями в процентах.

    Выходные данные:
        AgeDistributionReport
            Все корзины в фиксированном порядке, даже пустые.
    """
    counts = {bucket.label: 0 for bucket in AGE_BUCKETS}
    total = 0
    for age in ages:
        total += 1
        for bucket in AGE_BUCKETS:
            if bucket.contains(age):
                counts[bucket.label] += 1
                break

    groups = [
        AgeGroupShare(age_group=bucket.label, count=counts[bucket.label], percentage=format_percentage(counts[bucket.label], total))
        for bucket in AGE_BUCKETS
    ]
    return AgeDistributionReport(total=total, groups=groups)


def ages_from_records(records: Iterable[Mapping[str, Any]], field_name: str = "age") -> list[int]:
    return [parse_int_prefix(record.get(field_name)) for record in records]


def format_age_distribution(report: AgeDistributionReport) -> str:
    lines = [
        "=== Age Distribution Report ===",
        "",
        "Age-Group\t% Distribution",
        "--------------------------------",
    ]
    for group in report.groups:
        lines.append(f"{group.age_group}\t\t{group.percentage}")
    lines.append("")
    lines.append(f"Total users: {report.total}")
    lines.append("================================")
    return "\n".join(lines)


__all__ = [
    "AGE_BUCKETS",
    "AgeBucket",
    "AgeDistributionReport",
    "AgeGroupShare",
    "ages_from_records",
    "calculate_age_distribution",
    "format_age_distribution",
    "format_percentage",
]
