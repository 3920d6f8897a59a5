"""Application package for the course administration backend.

This package exposes the models, repositories, services and routers used by
the FastAPI application in `courseadmin.main`. Individual modules contain the
concrete implementations and documentation.
"""
