"""
API routers package
"""

from ephemeral_store.routers.objects import router as objects_router
from ephemeral_store.routers.server import router as server_router
