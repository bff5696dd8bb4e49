"""
Create the DynamoDB tables used by the bot (expenses + per-user state).
Safe to run repeatedly; existing tables are left alone.

Usage:
    python setup_tables.py
"""
from dotenv import load_dotenv

# Load environment variables from .env file before settings are read
load_dotenv()

from app.core.config import settings  # noqa: E402
from app.db.dynamo import create_tables  # noqa: E402

print("=" * 60)
print("DynamoDB Table Setup")
print("=" * 60)
print(f"Region: {settings.DYNAMO_REGION}")
print(f"Expenses table: {settings.DYNAMO_EXPENSES_TABLE}")
print(f"User state table: {settings.DYNAMO_USER_STATE_TABLE}")

created = create_tables()
if created:
    for name in created:
        print(f"✅ Created {name}")
else:
    print("✅ All tables already exist")
