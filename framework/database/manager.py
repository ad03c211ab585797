from typing import Optional
from .sql_driver import SQLDriver

class DatabaseManager:
    _instance = None

    def __init__(self, settings, driver: Optional[SQLDriver] = None):
        self.settings = settings
        self.sql = driver or SQLDriver.from_settings(settings)

    @classmethod
    def get_instance(cls, settings=None):
        if cls._instance is None:
            if settings is None:
                from framework.config import settings as app_settings
                settings = app_settings
            cls._instance = cls(settings)
        return cls._instance

    @classmethod
    def reset_instance(cls):
        cls._instance = None

    def create_unit_of_work(self, tracking=None):
        """Create a unit of work bound to this manager's driver."""
        from framework.repository.unit_of_work import TrackingPolicy, UnitOfWork

        if tracking is None:
            tracking = TrackingPolicy(self.settings.TRACKING_POLICY)
        return UnitOfWork.from_driver(self.sql, tracking=tracking)
