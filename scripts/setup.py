#!/usr/bin/env python3
"""Setup script for the tourism portal API: migrations plus seed data."""

import asyncio
import logging
import os
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command  # noqa: E402
from alembic.config import Config  # noqa: E402
from sqlalchemy import func, select  # noqa: E402

from tourism_portal.core.config import settings  # noqa: E402
from tourism_portal.core.database import Database  # noqa: E402
from tourism_portal.core.security import hash_password  # noqa: E402
from tourism_portal.models import Account, Role, TourPackage  # noqa: E402

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@eternityafrica.example")
ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "change-me-now")


def run_migrations():
    """Upgrade the database schema to the latest revision."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def create_sample_data():
    """Create an admin account and one sample package if none exist."""
    database = Database(settings.database_url)
    database.connect()

    logger.info("Creating sample data...")

    async with database.session_factory()() as db:
        try:
            result = await db.execute(select(Account).where(Account.email == ADMIN_EMAIL.lower()))
            admin = result.scalar_one_or_none()
            if admin is None:
                admin = Account(
                    first_name="Portal",
                    last_name="Admin",
                    email=ADMIN_EMAIL,
                    password_hash=hash_password(ADMIN_PASSWORD),
                    role=Role.ADMIN.value,
                    email_verified=True,
                )
                db.add(admin)
                await db.flush()
                logger.info("Admin account created", extra={"email": admin.email})

            existing_packages = await db.scalar(select(func.count()).select_from(TourPackage))
            if existing_packages:
                logger.info("Sample data already exists, skipping...")
                await db.commit()
                return

            db.add(TourPackage(
                name="Serengeti Migration Safari",
                description="Follow the great wildebeest migration across the Serengeti plains with expert guides",
                short_description="Five days on the trail of the great migration",
                category="safari",
                circuit="northern",
                destinations=[
                    {"name": "Arusha", "description": "Gateway town at the foot of Mount Meru", "activities": [], "duration": 1},
                    {"name": "Serengeti", "description": "Endless plains and the migration herds", "activities": ["game drives"], "duration": 3},
                    {"name": "Ngorongoro", "description": "Crater floor teeming with wildlife", "activities": ["crater tour"], "duration": 1},
                ],
                duration_days=5,
                duration_nights=4,
                base_price=2400,
                currency="USD",
                price_includes=["park fees", "accommodation", "meals"],
                price_excludes=["international flights", "tips"],
                seasonal_pricing=[],
                group_discounts=[{"min_size": 4, "discount": 10}, {"min_size": 8, "discount": 15}],
                availability={"max_group_size": 12, "min_group_size": 1, "departure_dates": [],
                              "blackout_dates": [], "advance_booking_days": 14},
                inclusions={"accommodation": "mid-range", "meals": ["breakfast", "lunch", "dinner"],
                            "guide": True, "activities": [], "equipment": []},
                itinerary=[],
                media={"images": [], "videos": []},
                requirements={"fitness_level": "easy", "medical_requirements": [], "equipment": []},
                slug="serengeti-migration-safari",
                seo={"keywords": ["serengeti", "safari", "migration"]},
                is_featured=True,
                created_by_id=admin.id,
            ))

            await db.commit()
            logger.info("Sample data created successfully!")

        except Exception:
            await db.rollback()
            logger.error("Failed to create sample data", exc_info=True)
            raise
        finally:
            await database.dispose()


def main():
    """Main setup function."""
    logger.info("Starting tourism portal API setup...")

    run_migrations()
    asyncio.run(create_sample_data())

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn tourism_portal.main:app --reload")


if __name__ == "__main__":
    main()
