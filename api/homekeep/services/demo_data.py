"""Sample data for a first run: one home with three tasks, two warranties, two providers."""
import logging
from datetime import timedelta
from decimal import Decimal

from homekeep.schemas.common import Category, Frequency, FrequencyUnit
from homekeep.schemas.maintenance import MaintenanceLogRecord, MaintenanceTaskRecord
from homekeep.schemas.property import PropertyRecord
from homekeep.schemas.service_provider import ServiceProviderRecord
from homekeep.schemas.warranty import WarrantyRecord
from homekeep.services.store import Collection
from homekeep.services.tracker import HomeTracker

logger = logging.getLogger(__name__)

DEMO_PROPERTY_ID = "property1"
DAY = timedelta(days=1)


async def seed_demo_data(tracker: HomeTracker) -> bool:
    """Insert the demo set unless this account already has properties. Returns True if seeded."""
    store = tracker.store
    if await store.get_all(Collection.PROPERTIES):
        logger.info("Demo data skipped for %s: properties already exist", store.owner_id)
        return False

    now = tracker.stamp()
    stamps = {"created_at": now, "updated_at": now}

    records: list[tuple[Collection, object]] = [
        (Collection.PROPERTIES, PropertyRecord(
            id=DEMO_PROPERTY_ID, name="My Home", address="123 Main St, Anytown, USA", **stamps,
        )),
        (Collection.MAINTENANCE_TASKS, MaintenanceTaskRecord(
            id="task1", property_id=DEMO_PROPERTY_ID, title="Replace HVAC Filter",
            description="Replace the air filter in the HVAC system", category=Category.HVAC,
            frequency=Frequency(value=3, unit=FrequencyUnit.MONTHS),
            last_completed=now - 30 * DAY, next_due=now + 60 * DAY, **stamps,
        )),
        (Collection.MAINTENANCE_TASKS, MaintenanceTaskRecord(
            id="task2", property_id=DEMO_PROPERTY_ID, title="Clean Gutters",
            description="Remove debris from gutters and check for damage", category=Category.OUTDOOR,
            frequency=Frequency(value=6, unit=FrequencyUnit.MONTHS),
            last_completed=now - 150 * DAY, next_due=now + 30 * DAY, **stamps,
        )),
        (Collection.MAINTENANCE_TASKS, MaintenanceTaskRecord(
            id="task3", property_id=DEMO_PROPERTY_ID, title="Check Smoke Detectors",
            description="Test all smoke detectors and replace batteries if needed", category=Category.HOME,
            frequency=Frequency(value=6, unit=FrequencyUnit.MONTHS),
            last_completed=now - 170 * DAY, next_due=now + 10 * DAY, **stamps,
        )),
        (Collection.WARRANTIES, WarrantyRecord(
            id="warranty1", property_id=DEMO_PROPERTY_ID, item_name="Refrigerator",
            manufacturer="Samsung", category=Category.APPLIANCES,
            purchase_date=now - 365 * DAY, expiry_date=now + 730 * DAY,
            description="3-year warranty on all parts and labor", documents=[], **stamps,
        )),
        (Collection.WARRANTIES, WarrantyRecord(
            id="warranty2", property_id=DEMO_PROPERTY_ID, item_name="Washing Machine",
            manufacturer="LG", category=Category.APPLIANCES,
            purchase_date=now - 400 * DAY, expiry_date=now - 35 * DAY,
            description="1-year limited warranty", documents=[], **stamps,
        )),
        (Collection.SERVICE_PROVIDERS, ServiceProviderRecord(
            id="provider1", name="ABC Plumbing", category=[Category.PLUMBING],
            phone="555-123-4567", email="contact@abcplumbing.com", website="www.abcplumbing.com",
            notes="Responsive and reasonably priced", rating=4, **stamps,
        )),
        (Collection.SERVICE_PROVIDERS, ServiceProviderRecord(
            id="provider2", name="XYZ HVAC Services", category=[Category.HVAC],
            phone="555-987-6543", email="service@xyzhvac.com", website="www.xyzhvac.com",
            notes="Licensed and insured, 24/7 emergency service", rating=5, **stamps,
        )),
        (Collection.MAINTENANCE_LOGS, MaintenanceLogRecord(
            id="log1", task_id="task1", property_id=DEMO_PROPERTY_ID,
            completed_date=now - 30 * DAY, cost=Decimal("15.99"),
            notes="Replaced with MERV 11 filter", service_provider_id=None, documents=[], **stamps,
        )),
        (Collection.MAINTENANCE_LOGS, MaintenanceLogRecord(
            id="log2", task_id="task2", property_id=DEMO_PROPERTY_ID,
            completed_date=now - 150 * DAY, cost=Decimal("0"),
            notes="DIY cleaning, no issues found", service_provider_id=None, documents=[], **stamps,
        )),
    ]

    for collection, record in records:
        await store.update(collection, record)

    await tracker.refresh()
    await tracker.rearm_reminders()
    logger.info("Seeded demo data for %s", store.owner_id)
    return True
