"""PostgreSQL SQLSTATE codes recognized as constraint rejections.

Classification keys on these codes, never on driver message text. Codes not
listed here are treated as transport failures by the Postgres substrate.
"""

# Class 23: integrity constraint violation
NOT_NULL_VIOLATION = "23502"
UNIQUE_VIOLATION = "23505"
CHECK_VIOLATION = "23514"

# Class 22: data exception
INVALID_DATETIME_FORMAT = "22007"
DATETIME_FIELD_OVERFLOW = "22008"
INVALID_TEXT_REPRESENTATION = "22P02"

# Class 08: connection exception
CONNECTION_EXCEPTION_CLASS = "08"
