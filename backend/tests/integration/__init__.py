"""
Integration tests package.

Integration tests run the repositories against a real PostgreSQL database
with the pgvector extension available. Point DATABASE_URL at a disposable
database; the tests create and drop every table.

To run integration tests:
    pytest tests/integration/ -v --run-integration

To skip integration tests (default):
    pytest tests/ -v
"""
