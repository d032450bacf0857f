"""Fotostand — FastAPI web layer.

This package contains the FastAPI application factory and the Pydantic
response models.  The routes only translate HTTP to calls on the core
(:mod:`fotostand.core`); no gallery logic lives here.

Modules
-------
main
    ``create_app()`` factory, all route handlers and the ``main()`` CLI
    entry point.
models
    Pydantic models for API responses.
"""
