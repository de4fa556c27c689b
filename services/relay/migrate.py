#!/usr/bin/env python
"""
Database migration script.
Creates the session tables defined in the models.
"""

import sys
import os

# Add the service directory to the path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from shop_relay.database import Base, create_schema
from shop_relay.config import get_settings


def run_migrations():
    """Create all database tables."""
    print(f"Creating database tables in {get_settings().database_url} ...")
    try:
        create_schema()
        print("Database tables created successfully!")
        print("\nCreated tables:")
        for table in Base.metadata.tables:
            print(f"  - {table}")
    except Exception as e:
        print(f"Error creating tables: {str(e)}")
        sys.exit(1)


if __name__ == "__main__":
    run_migrations()
