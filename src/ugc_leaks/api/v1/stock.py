from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from ugc_leaks.api.dependencies import get_stock_cache
from ugc_leaks.core.rate_limit import STOCK_RATE_LIMIT, limiter
from ugc_leaks.domain.models import StockResult
from ugc_leaks.domain.ports import InvalidAssetIdsError
from ugc_leaks.services.stock_cache import StockCache, parse_asset_ids

router = APIRouter(prefix="/stock", tags=["Stock"])

StockCacheDep = Annotated[StockCache, Depends(get_stock_cache)]


@router.get("", response_model=dict[str, StockResult])
@limiter.limit(STOCK_RATE_LIMIT)
async def get_stock(
    request: Request,
    response: Response,
    cache: StockCacheDep,
    ids: str | None = Query(default=None, description="Comma separated asset ids"),
    urls: str | None = Query(default=None, description="Comma separated catalog URLs"),
) -> dict[str, StockResult]:
    """
    Current and total stock for limited catalog items, keyed by asset id.
    Items that are not limited, or could not be read, carry an error entry instead.
    """
    asset_ids = parse_asset_ids(ids, urls)
    try:
        stock = await cache.get_stock(asset_ids)
    except InvalidAssetIdsError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    response.headers["Cache-Control"] = "public, max-age=60"
    return stock
