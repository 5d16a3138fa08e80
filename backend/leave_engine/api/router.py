from fastapi import APIRouter

from leave_engine.api.applications import applications_router
from leave_engine.api.balances import balances_router, employee_balance_router
from leave_engine.api.cash_outs import cash_outs_router
from leave_engine.api.holidays import holidays_router
from leave_engine.api.leave_types import leave_types_router
from leave_engine.api.recalls import recalls_router
from leave_engine.api.settings import settings_router

api_router = APIRouter()
api_router.include_router(settings_router)
api_router.include_router(leave_types_router)
api_router.include_router(holidays_router)
api_router.include_router(balances_router)
api_router.include_router(employee_balance_router)
api_router.include_router(applications_router)
api_router.include_router(cash_outs_router)
api_router.include_router(recalls_router)
