"""
Running club backend.

Members log runs, the club keeps a shared meetup calendar and tracks team
mileage goals. The FastAPI service sits on top of interchangeable storage
managers (in-memory, S3 documents, DynamoDB tables or a SQL database).
"""
