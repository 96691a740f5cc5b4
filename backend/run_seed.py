"""Seed the configured store with a demo user and a welcome session.

Only meaningful with ``MONGODB_URI`` set; the in-memory store is gone as
soon as this script exits.

    python backend/run_seed.py
"""

import asyncio
import logging
import sys
from pathlib import Path

# Add backend directory to path
backend_dir = Path(__file__).resolve().parent
sys.path.insert(0, str(backend_dir))

from chatbot.auth import create_or_get_user
from chatbot.config import settings
from chatbot.models.sessions import SessionCreate
from chatbot.storage import open_store

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


async def main() -> None:
    """Create the demo user and, if the store is empty, a first session."""
    store = await open_store(settings)
    try:
        user = await create_or_get_user(store, settings.seed_username)
        logger.info("Demo user %s (%s)", user.username, user.id)

        if not await store.list_sessions():
            session = await store.create_session(
                SessionCreate(
                    title="Welcome Session",
                    provider=settings.default_provider,
                    model=settings.default_model,
                )
            )
            logger.info("Created demo session %s", session.id)

        logger.info("Seeding complete")
    except Exception as e:
        logger.error(f"Seed failed: {e}", exc_info=True)
        sys.exit(1)
    finally:
        await store.close()


if __name__ == "__main__":
    asyncio.run(main())
