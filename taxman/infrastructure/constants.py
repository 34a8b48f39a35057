"""Infrastructure-related constants, particularly for the database."""

# Database constants
POOL_RECYCLE_SECONDS = 3600  # 1 hour
MAX_LOGGED_STATEMENT_LENGTH = 500

# Logical names of the prebuilt store statements
UPSERT_TAX_RECORD = "upsert_tax_record"
SELECT_TAX_RECORDS = "select_tax_records"

# Naming convention for constraints to ensure consistency
NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}
