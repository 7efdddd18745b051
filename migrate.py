"""
Database migration script for the asset store.
Brings older asset tables onto the single canonical `category` column.
"""

from typing import Optional

from sqlalchemy import inspect, text

from db_engine import get_engine, init_db
from models import AssetCategory
from services.symbols import classify

LEGACY_CATEGORY_COLUMNS = ('type', 'asset_type')

# Nullable columns added after the first release
OPTIONAL_ASSET_COLUMNS = {
    'market_cap_rank': 'INTEGER',
    'image': 'VARCHAR',
}


def normalize_category(value: Optional[str], symbol: str) -> AssetCategory:
    """
    Map a legacy category value to an AssetCategory.

    Accepts singular values ("stock") and segment names ("stocks");
    anything else falls back to classifying the symbol.
    """
    if value:
        try:
            return AssetCategory.from_segment(value.strip().lower())
        except ValueError:
            pass
    return classify(symbol)


def _asset_columns(engine):
    inspector = inspect(engine)
    if not inspector.has_table('asset'):
        return None
    return [col['name'] for col in inspector.get_columns('asset')]


def migrate_asset_add_columns(engine=None):
    """Add the category column and later optional columns if they don't exist."""
    engine = engine or get_engine()
    columns = _asset_columns(engine)
    if columns is None:
        print("Table 'asset' does not exist. Nothing to migrate.")
        return

    wanted = {'category': 'VARCHAR'}
    wanted.update(OPTIONAL_ASSET_COLUMNS)
    with engine.begin() as conn:
        for name, sql_type in wanted.items():
            if name in columns:
                print(f"✓ Column '{name}' already exists in asset table.")
                continue
            print(f"Adding '{name}' column to asset table...")
            conn.execute(text(f"ALTER TABLE asset ADD COLUMN {name} {sql_type}"))
            print(f"✓ Added '{name}' column successfully.")


def migrate_asset_backfill_category(engine=None) -> int:
    """
    Fill or correct the category column.

    Rows whose category is missing or not a canonical singular value take
    it from a legacy type/asset_type column, or from the symbol itself.
    A value that disagrees with how the symbol classifies is replaced by the
    classification, which is what the reconciler checks quotes against.

    Returns:
        Number of rows updated
    """
    engine = engine or get_engine()
    columns = _asset_columns(engine)
    if columns is None or 'category' not in columns:
        print("Column 'category' does not exist yet. Run the column migration first.")
        return 0

    legacy = [name for name in LEGACY_CATEGORY_COLUMNS if name in columns]
    select_columns = ', '.join(['id', 'symbol', 'category'] + [f'"{name}"' for name in legacy])

    updated = 0
    with engine.begin() as conn:
        rows = conn.execute(text(f"SELECT {select_columns} FROM asset")).mappings().all()
        for row in rows:
            source = row['category'] or next((row[name] for name in legacy if row[name]), None)
            category = normalize_category(source, row['symbol'])
            derived = classify(row['symbol'])
            if category != derived:
                print(f"! {row['symbol']}: stored as '{source}' but classifies as {derived.value}; using {derived.value}.")
                category = derived
            if row['category'] == category.value:
                continue
            conn.execute(
                text("UPDATE asset SET category = :category WHERE id = :id"),
                {'category': category.value, 'id': row['id']}
            )
            updated += 1

    print(f"✓ Backfilled category on {updated} assets.")
    return updated


def run_all_migrations(engine=None):
    """Run all pending migrations."""
    engine = engine or get_engine()
    print("=" * 60)
    print("Asset Store Migration")
    print("=" * 60)

    migrate_asset_add_columns(engine)
    migrate_asset_backfill_category(engine)
    # Creates tables that are new since the store was first set up (alert)
    init_db(engine)

    print("=" * 60)
    print("Migration complete!")
    print("=" * 60)


if __name__ == "__main__":
    run_all_migrations()
