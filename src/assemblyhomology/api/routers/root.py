"""Root router."""
import time

from fastapi import APIRouter

from assemblyhomology import __version__
from assemblyhomology.api.schemas.root import RootView

SERVER_NAME = "Assembly Homology service"

router = APIRouter(tags=["root"])


@router.get("/", response_model=RootView)
def root() -> RootView:
    return RootView(servname=SERVER_NAME, version=__version__, servertime=int(time.time() * 1000))
