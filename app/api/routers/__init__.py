"""
app/api/routers package marker.
"""

from app.api.routers.billing_router import router as billing_router
from app.api.routers.export_router import router as export_router
from app.api.routers.payroll_router import router as payroll_router
from app.api.routers.report_router import router as report_router

__all__ = [
    "billing_router",
    "export_router",
    "payroll_router",
    "report_router",
]
