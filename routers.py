from fastapi import APIRouter
from endpoints.market import router as market_router
from endpoints.stocks import router as stocks_router
from endpoints.users import router as users_router
from endpoints.portfolio import router as portfolio_router
from endpoints.watchlist import router as watchlist_router
from endpoints.realtime_ws import router as realtime_ws_router
from endpoints.jobs import router as jobs_router

api_router = APIRouter()
api_router.include_router(market_router)
api_router.include_router(stocks_router)
api_router.include_router(users_router)
api_router.include_router(portfolio_router)
api_router.include_router(watchlist_router)
api_router.include_router(realtime_ws_router, tags=["realtime"])
api_router.include_router(jobs_router)
