import asyncio
import os
import sys
from dotenv import load_dotenv
from newsdrip.database import CategoryRepository, Database
from newsdrip.database.schema import create_schema

load_dotenv()

DEFAULT_CATEGORIES = [
    ("Technology", "Software, gadgets and the people building them"),
    ("Business", "Markets, startups and the economy"),
    ("Science", "Research news and discoveries"),
    ("Health", "Wellness, medicine and fitness"),
]

async def main(seed: bool):
    db = Database(os.getenv('DATABASE_URL', 'postgresql://localhost:5432/newsdrip'))

    try:
        print("Creating tables...")
        await create_schema(db)
        print("✓ Tables and indexes created")

        if seed:
            categories = CategoryRepository(db)
            existing = {category.name for category in await categories.list_categories()}
            for name, description in DEFAULT_CATEGORIES:
                if name not in existing:
                    await categories.create_category(name, description)
                    print(f"✓ Category added: {name}")

        print("\n✅ Database ready!")

    except Exception as e:
        print(f"❌ Error: {e}")
        raise
    finally:
        await db.close()

if __name__ == "__main__":
    asyncio.run(main(seed="--seed" in sys.argv))
