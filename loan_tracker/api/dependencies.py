"""
Service wiring and FastAPI dependencies
"""

from datetime import datetime
from typing import Callable, Optional
import threading

from ..config import LoanTrackerConfig, get_config
from ..loans import LoanManager
from ..reporting import ReportingEngine
from ..storage import StorageInterface, create_storage


class LoanTrackerSystem:
    """Loan tracker components wired to one storage backend"""

    def __init__(
        self,
        config: Optional[LoanTrackerConfig] = None,
        storage: Optional[StorageInterface] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.config = config or get_config()

        self.storage = storage or create_storage(self.config.database_url)
        self.loan_manager = LoanManager(self.storage, clock=clock)
        self.reporting_engine = ReportingEngine(
            self.loan_manager,
            currency_label=self.config.report_currency_label,
            footer_lines=[self.config.report_footer_text, self.config.report_footer_link],
            footer_link=self.config.report_footer_link,
            chunk_size=self.config.report_chunk_size
        )

    def close(self) -> None:
        self.storage.close()


_system: Optional[LoanTrackerSystem] = None
_system_lock = threading.Lock()


def get_system() -> LoanTrackerSystem:
    """Dependency returning the process-wide system, built on first use"""
    global _system
    with _system_lock:
        if _system is None:
            _system = LoanTrackerSystem()
        return _system


def set_system(system: Optional[LoanTrackerSystem]) -> None:
    """Replace the process-wide system (None drops it)"""
    global _system
    with _system_lock:
        _system = system
