"""Schema-conformance and constraint-behavior verification for the users table."""
