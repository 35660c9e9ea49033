"""
Database package for Timey Zoney.

- **db_connection.py**: The single long-lived aiosqlite connection
  (``db_connection``) with serialised write transactions.
- **db_schema.py**: Table and index creation.
"""
