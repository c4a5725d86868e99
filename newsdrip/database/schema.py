# newsdrip/database/schema.py
import logging
from newsdrip.database.connection import Database

logger = logging.getLogger(__name__)

TABLES_SQL = '''
    -- Categories
    CREATE TABLE IF NOT EXISTS categories (
        id SERIAL PRIMARY KEY,
        name VARCHAR(100) NOT NULL,
        description TEXT,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );

    -- Subscribers
    CREATE TABLE IF NOT EXISTS subscribers (
        id SERIAL PRIMARY KEY,
        email VARCHAR(255),
        phone VARCHAR(20),
        contact_method VARCHAR(10) NOT NULL,
        frequency VARCHAR(20) NOT NULL DEFAULT 'weekly',
        is_active BOOLEAN NOT NULL DEFAULT true,
        unsubscribe_token VARCHAR(255) UNIQUE,
        preferences_token VARCHAR(64) UNIQUE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS subscriber_categories (
        subscriber_id INTEGER NOT NULL REFERENCES subscribers(id) ON DELETE CASCADE,
        category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (subscriber_id, category_id)
    );

    -- Newsletters
    CREATE TABLE IF NOT EXISTS newsletters (
        id SERIAL PRIMARY KEY,
        title VARCHAR(255) NOT NULL,
        subject VARCHAR(255),
        content TEXT NOT NULL,
        author_id VARCHAR(255) NOT NULL,
        status VARCHAR(20) NOT NULL DEFAULT 'draft',
        template VARCHAR(50) NOT NULL DEFAULT 'classic',
        sent_at TIMESTAMPTZ,
        created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS newsletter_categories (
        newsletter_id INTEGER NOT NULL REFERENCES newsletters(id) ON DELETE CASCADE,
        category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
        PRIMARY KEY (newsletter_id, category_id)
    );

    -- Deliveries, one row per (newsletter, subscriber) per send batch
    CREATE TABLE IF NOT EXISTS deliveries (
        id SERIAL PRIMARY KEY,
        newsletter_id INTEGER NOT NULL REFERENCES newsletters(id) ON DELETE CASCADE,
        subscriber_id INTEGER NOT NULL REFERENCES subscribers(id) ON DELETE CASCADE,
        method VARCHAR(10) NOT NULL,
        status VARCHAR(20) NOT NULL,
        reason TEXT,
        batch_id UUID NOT NULL,
        sent_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
        opened_at TIMESTAMPTZ,
        UNIQUE (newsletter_id, subscriber_id, batch_id)
    );

    -- Subscribe endpoint throttling
    CREATE TABLE IF NOT EXISTS rate_limits (
        id SERIAL PRIMARY KEY,
        identifier VARCHAR(255) NOT NULL,
        endpoint VARCHAR(100) NOT NULL,
        requests_count INTEGER DEFAULT 1,
        window_start TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
    );
'''

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_subscribers_email ON subscribers(LOWER(email))",
    "CREATE INDEX IF NOT EXISTS idx_subscribers_active ON subscribers(is_active)",
    "CREATE INDEX IF NOT EXISTS idx_subscriber_categories_category ON subscriber_categories(category_id)",
    "CREATE INDEX IF NOT EXISTS idx_newsletters_status ON newsletters(status)",
    "CREATE INDEX IF NOT EXISTS idx_deliveries_newsletter ON deliveries(newsletter_id)",
    "CREATE INDEX IF NOT EXISTS idx_deliveries_status ON deliveries(status)",
    "CREATE INDEX IF NOT EXISTS idx_rate_limits_lookup ON rate_limits(identifier, endpoint, window_start)",
]

async def create_schema(db: Database):
    """Create all tables and indexes if they do not exist yet"""
    async with db.acquire() as connection:
        async with connection.transaction():
            await connection.execute(TABLES_SQL)
            for index_sql in INDEXES:
                await connection.execute(index_sql)
    logger.info("Database schema is up to date")
