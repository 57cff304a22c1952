"""Machine-readable error codes carried by backend failures.

The values follow PostgreSQL SQLSTATE codes (and PostgREST for "not found")
because that is what hosted Postgres backends return in their error bodies.
"""

UNIQUE_VIOLATION = "23505"
INSUFFICIENT_PRIVILEGE = "42501"
UNDEFINED_COLUMN = "42703"
UNDEFINED_TABLE = "42P01"
NOT_FOUND = "PGRST116"
