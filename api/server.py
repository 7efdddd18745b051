"""
FastAPI server for the market dashboard.
This file wires:
- the refresh trigger used by the external scheduler
- grouped market reads (stored and live) and single quotes
- administrative asset cleanup and delete
- per-user alert CRUD
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from sqlmodel import Session

from api.dependencies import (
    get_db,
    get_market_view,
    get_refresh_job,
    require_cron_token,
    require_user_id,
)
from api.schemas import (
    AlertCreate,
    AlertDeleteResponse,
    AlertResponse,
    CleanupResponse,
    DeleteAssetResponse,
)
from config import ConfigurationError, get_settings
from db_engine import init_db
from models import AssetCategory
from models.asset import utcnow
from repositories import AlertRepository, AssetRepository
from services.deduplicator import AssetDeduplicator
from services.errors import StoreWriteError
from services.market_view import MarketView
from services.refresh import RefreshJob

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    yield


def create_app() -> FastAPI:
    app = FastAPI(title="Market Data API", version="0.1.0", lifespan=lifespan)

    @app.exception_handler(StoreWriteError)
    async def store_write_error_handler(request: Request, exc: StoreWriteError):
        logger.error(f"Store write failed on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={'success': False, 'error': f"Store write failed: {exc}"})

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(request: Request, exc: ConfigurationError):
        logger.error(f"Configuration error on {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={'success': False, 'error': str(exc)})

    @app.get("/health")
    def health():
        return {'status': 'ok'}

    # ---------------------------------------------------------
    # Refresh trigger
    # ---------------------------------------------------------

    @app.get("/api/cron/update-assets", dependencies=[Depends(require_cron_token)])
    async def update_assets(job: RefreshJob = Depends(get_refresh_job)):
        """Run one refresh cycle. 500 with the result body when the cycle failed."""
        result = await job.run()
        return JSONResponse(
            status_code=200 if result.success else 500,
            content=result.to_dict()
        )

    # ---------------------------------------------------------
    # Market reads
    # ---------------------------------------------------------

    @app.get("/api/market/all")
    def market_all(view: MarketView = Depends(get_market_view)):
        """Stored assets grouped by segment, placeholders for missing watchlist symbols."""
        return view.grouped_from_store()

    @app.get("/api/market/live")
    async def market_live(view: MarketView = Depends(get_market_view)):
        grouped, failed = await view.grouped_live()
        payload = dict(grouped)
        if failed:
            payload['failedSymbols'] = [f.to_dict() for f in failed]
        payload['timestamp'] = utcnow().isoformat()
        return payload

    @app.get("/api/market/quote")
    async def market_quote(
        symbol: str = Query(..., min_length=1),
        category: Optional[AssetCategory] = Query(None),
        view: MarketView = Depends(get_market_view),
    ):
        return await view.quote(symbol, category)

    # ---------------------------------------------------------
    # Asset administration
    # ---------------------------------------------------------

    @app.post(
        "/api/assets/cleanup",
        response_model=CleanupResponse,
        dependencies=[Depends(require_cron_token)],
    )
    def cleanup_assets(
        dry_run: bool = Query(False),
        db: Session = Depends(get_db),
    ):
        """Collapse duplicate spellings of the same instrument."""
        plan = AssetDeduplicator(session=db).run(dry_run=dry_run)
        return CleanupResponse(
            dry_run=plan.dry_run,
            deleted_count=plan.deleted_count,
            deleted_ids=plan.delete_ids,
            remaining_count=len(plan.keep),
        )

    @app.delete(
        "/api/assets/{symbol}",
        response_model=DeleteAssetResponse,
        dependencies=[Depends(require_cron_token)],
    )
    def delete_asset(symbol: str, db: Session = Depends(get_db)):
        if not AssetRepository.delete_by_symbol(symbol, session=db):
            raise HTTPException(status_code=404, detail=f"Asset {symbol} not found")
        logger.info(f"Deleted asset {symbol}")
        return DeleteAssetResponse(success=True, message=f"Asset {symbol} deleted successfully")

    # ---------------------------------------------------------
    # Alerts
    # ---------------------------------------------------------

    @app.get("/api/alerts", response_model=List[AlertResponse])
    def list_alerts(
        user_id: str = Depends(require_user_id),
        db: Session = Depends(get_db),
    ):
        return AlertRepository.get_active_for_user(user_id, session=db)

    @app.post("/api/alerts", response_model=AlertResponse, status_code=status.HTTP_201_CREATED)
    def create_alert(
        alert: AlertCreate,
        user_id: str = Depends(require_user_id),
        db: Session = Depends(get_db),
    ):
        if AssetRepository.get_by_symbol(alert.asset_symbol, session=db) is None:
            raise HTTPException(status_code=404, detail="Asset not found")
        return AlertRepository.add(
            user_id=user_id,
            asset_symbol=alert.asset_symbol,
            alert_type=alert.alert_type,
            condition=alert.condition,
            value=alert.value,
            session=db,
        )

    @app.post("/api/alerts/{alert_id}/deactivate", response_model=AlertResponse)
    def deactivate_alert(
        alert_id: int,
        user_id: str = Depends(require_user_id),
        db: Session = Depends(get_db),
    ):
        alert = AlertRepository.deactivate(alert_id, user_id, session=db)
        if alert is None:
            raise HTTPException(status_code=404, detail=f"Alert {alert_id} not found")
        return alert

    @app.delete("/api/alerts", response_model=AlertDeleteResponse)
    def delete_alerts(
        id: Optional[int] = Query(None),
        asset_symbol: Optional[str] = Query(None),
        user_id: str = Depends(require_user_id),
        db: Session = Depends(get_db),
    ):
        """Delete one alert by id, or all of the user's alerts on an asset."""
        if id is None and not asset_symbol:
            raise HTTPException(status_code=400, detail="Alert ID or asset_symbol is required")
        deleted = AlertRepository.delete_for_user(
            user_id,
            alert_id=id,
            asset_symbol=asset_symbol.strip().upper() if asset_symbol else None,
            session=db,
        )
        return AlertDeleteResponse(success=True, deleted=deleted)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
