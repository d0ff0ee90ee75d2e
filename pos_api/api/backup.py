from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from pos_api.database import get_db
from pos_api.services.backup_service import BackupService
from pos_api.services.exceptions import InvalidInputError
from pos_api.services.realtime_service import schedule_broadcast
from pos_api.schemas.backup import (
    BackupImportRequest,
    BackupImportResponse,
    BackupInfoResponse,
)

router = APIRouter(prefix="/backup", tags=["Backup"])


@router.get(
    "/export",
    summary="Export a full backup",
    description="Download every order (hidden included) and product as one JSON file."
)
def export_backup(db: Session = Depends(get_db)):
    service = BackupService(db)
    backup = service.export()
    return JSONResponse(
        content=backup,
        headers={"Content-Disposition": f'attachment; filename="{service.backup_filename()}"'},
    )


@router.post(
    "/import",
    response_model=BackupImportResponse,
    status_code=status.HTTP_200_OK,
    summary="Restore a backup",
    description="""
    Restore a file produced by the export. Products are upserted by ID and
    orders are replaced or inserted, all in one transaction.
    """
)
def import_backup(
    backup: BackupImportRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    service = BackupService(db)
    try:
        counts = service.import_backup(backup)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    schedule_broadcast(background_tasks, db)
    return BackupImportResponse(imported=counts)


@router.get(
    "/info",
    response_model=BackupInfoResponse,
    summary="Backup information",
    description="Row counts of the tables a backup covers."
)
def backup_info(db: Session = Depends(get_db)):
    service = BackupService(db)
    return service.info()
