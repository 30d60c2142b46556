"""FastAPI application for crm-admin."""
