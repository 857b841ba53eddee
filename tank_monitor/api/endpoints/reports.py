from fastapi import APIRouter, Depends, Response

from tank_monitor.api.dependencies import get_store
from tank_monitor.api.errors import read_collection
from tank_monitor.services import reports
from tank_monitor.services.reports import ReportType
from tank_monitor.storage.base import TankStore

router = APIRouter()


@router.get("/reports/{report_type}")
async def download_report(report_type: ReportType, store: TankStore = Depends(get_store)):
    """Descarga un reporte CSV: status, history o maintenance."""
    if report_type == ReportType.status:
        body = reports.status_report(await read_collection(store.list_tanks(), "tanques"))
    elif report_type == ReportType.history:
        body = reports.history_report(await read_collection(store.list_history(), "historial"))
    else:
        body = reports.maintenance_report(await read_collection(store.list_maintenance(), "mantenimientos"))

    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="tank-{report_type.value}-report.csv"'},
    )
