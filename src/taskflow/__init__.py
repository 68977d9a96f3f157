"""
TaskFlow: todo list state store, view projection and login gate.

The FastAPI application is built by ``taskflow.main.create_app``; serve it with
``uvicorn taskflow.main:create_app --factory``.
"""

__version__ = "0.1.0"
