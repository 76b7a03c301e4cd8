"""
FastAPI Dependencies
Accessors for the services created during application startup
"""

from fastapi import Request

from ephemeral_store.services.entries import EntryService
from ephemeral_store.services.stats import StatsReporter
from ephemeral_store.services.sweeper import ExpirySweeper


def get_entry_service(request: Request) -> EntryService:
    return request.app.state.entry_service


def get_stats_reporter(request: Request) -> StatsReporter:
    return request.app.state.stats_reporter


def get_sweeper(request: Request) -> ExpirySweeper:
    return request.app.state.sweeper
