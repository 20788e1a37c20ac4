from __future__ import annotations

from converter.domain.age_distribution import AgeDistributionReport, calculate_age_distribution
from converter.infra.db.users_repository import SqliteUsersRepository


class AgeDistributionUseCase:
    """
    Назначение/ответственность:
        Гистограмма возрастов по сохранённым пользователям.
    """

    def __init__(self, repository: SqliteUsersRepository) -> None:
        self.repository = repository

    def run(self) -> AgeDistributionReport:
        return calculate_age_distribution(self.repository.list_ages())
