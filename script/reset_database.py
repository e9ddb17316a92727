#!/usr/bin/env python3
"""
Database Reset Script
Drop and recreate every carpool table

Notes:
- This script only resets database structure, does not seed test data
- To seed test data, run `python -m script.seed_data`
"""

import asyncio

from src.platform.config.core_setting import settings
from src.platform.database.orm_db_setting import (
    create_db_and_tables,
    dispose_engine,
    drop_db_and_tables,
)


async def main() -> None:
    print('🔄 Starting database reset...')
    print('=' * 50)
    print(f'Database: {settings.POSTGRES_SERVER}:{settings.POSTGRES_PORT}/{settings.POSTGRES_DB}')

    try:
        print('🗑️ Dropping tables...')
        await drop_db_and_tables()
        print('🏗️ Creating tables...')
        await create_db_and_tables()
    except Exception as e:
        print(f'❌ Reset failed: {e}')
        raise SystemExit(1) from e
    finally:
        await dispose_engine()

    print('=' * 50)
    print('✅ Database reset completed!')
    print('💡 To seed test data, run: python -m script.seed_data')


if __name__ == '__main__':
    asyncio.run(main())
