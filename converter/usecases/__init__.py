from converter.usecases.age_distribution_usecase import AgeDistributionUseCase
from converter.usecases.db_maintenance_usecase import DbMaintenanceUseCase
from converter.usecases.process_csv_usecase import ProcessCsvResult, ProcessCsvUseCase
from converter.usecases.users_usecase import UsersUseCase

__all__ = [
    "AgeDistributionUseCase",
    "DbMaintenanceUseCase",
    "ProcessCsvResult",
    "ProcessCsvUseCase",
    "UsersUseCase",
]
