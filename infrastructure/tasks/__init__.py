"""Celery task infrastructure package.

Importing this module wires together the configured Celery app; payout
reconciliation tasks register themselves via ``CELERY_IMPORTS``.
"""
from .config.celery import celery_app

__all__ = ["celery_app"]
