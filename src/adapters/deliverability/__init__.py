"""Deliverability adapters - External email validation services."""

from .abstract_api import AbstractApiClient

__all__ = ["AbstractApiClient"]
