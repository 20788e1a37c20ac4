from .collector import ROW_FAILED, ROW_OK, RUN_FAILED, RUN_PARTIAL, RUN_SUCCESS, ReportCollector
from .models import RunReport

__all__ = ["ROW_FAILED", "ROW_OK", "RUN_FAILED", "RUN_PARTIAL", "RUN_SUCCESS", "ReportCollector", "RunReport"]
