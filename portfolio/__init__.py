"""
Backend for the portfolio site: published case studies, a contact form, and
an authenticated admin area for projects, media and contact submissions.

The storage layer has an in-memory and a SQLAlchemy implementation behind the
same `DbClient` protocol; the FastAPI app picks one at startup.
"""
