"""Data subpackage - storage collaborators behind the DataService contract."""
import logging

from .records import Combo, Draft, PAYMENT_METHODS, Product, SaleLine, SaleRecord
from .service import DataService, DataServiceError, NotFoundError
from .demo_service import DEMO_ORG_ID, DemoDataService
from .csv_service import CsvDataService


logger = logging.getLogger(__name__)


def create_data_service(settings) -> DataService:
    """Build the data service selected by settings.data_mode."""
    if settings.demo_mode:
        logger.info("Using in-memory demo data service")
        return DemoDataService(org_id=settings.default_org_id)
    logger.info("Using CSV data service at %s", settings.data_dir)
    return CsvDataService(settings.data_dir)


__all__ = [
    'Combo', 'Draft', 'PAYMENT_METHODS', 'Product', 'SaleLine', 'SaleRecord',
    'DataService', 'DataServiceError', 'NotFoundError',
    'DEMO_ORG_ID', 'DemoDataService', 'CsvDataService', 'create_data_service',
]
