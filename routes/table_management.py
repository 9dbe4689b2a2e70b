from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import HTMLResponse, Response
from sqlalchemy.orm import Session
from qrcode.exceptions import DataOverflowError
from typing import List, Optional
from utils.database import get_db
from models.table_management import TableStatus
from models.user import User
from schemas.common import Envelope, ok
from schemas.table_management import TableCreate, TableUpdate, TableStatusUpdate, TableVerifyRequest, TableResponse
from services.events import EventBus, get_event_bus
from services.qr_codes import customer_link, render_qr_png, render_print_page
from services.table_management import TableManager
from utils.auth import get_current_admin, get_current_active_user
from utils.exceptions import InternalError, ValidationError
import logging


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/tables", tags=["table_management"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, private",
    "Pragma": "no-cache",
    "Expires": "0",
}

def get_table_manager(db: Session = Depends(get_db), events: EventBus = Depends(get_event_bus)) -> TableManager:
    return TableManager(db, events)

@router.get("", response_model=Envelope[List[TableResponse]])
async def list_tables(
    status: Optional[TableStatus] = None,
    manager: TableManager = Depends(get_table_manager)
):
    tables = manager.list_tables(status)
    logger.info(f"Retrieved {len(tables)} tables")
    return ok(tables)

@router.post("/verify", response_model=Envelope[TableResponse])
async def verify_table(request: TableVerifyRequest, manager: TableManager = Depends(get_table_manager)):
    table = manager.verify_table(request.table_number)
    return ok(table, message="Table verified")

# Must be declared before /{number}/qr so "qr" is not read as a table number
@router.get("/qr/print", response_class=HTMLResponse)
async def print_table_qr_codes(
    size: int = Query(260, ge=100, le=1000),
    url: Optional[str] = Query(None, description="Public frontend base URL, defaults to FRONTEND_URL"),
    manager: TableManager = Depends(get_table_manager)
):
    tables = manager.list_tables()
    try:
        page = render_print_page(tables, size=size, base_url=url)
    except (DataOverflowError, ValueError) as e:
        logger.warning(f"QR print page rejected for base URL {url!r}: {str(e)}")
        raise ValidationError("URL is too long to encode in a QR code")
    except Exception as e:
        logger.error(f"Failed to render QR print page: {str(e)}")
        raise InternalError("Failed to generate QR codes")
    return HTMLResponse(page, headers=NO_CACHE_HEADERS)

@router.get("/{number}/qr")
async def get_table_qr(
    number: int,
    size: int = Query(280, ge=100, le=1000),
    download: bool = False,
    url: Optional[str] = Query(None, description="Full link to encode instead of the table's menu link"),
    manager: TableManager = Depends(get_table_manager)
):
    table = manager.verify_table(number)
    link = customer_link(table.number, custom_url=url)
    logger.info(f"Generating QR for table {table.number}: {link}")
    try:
        image = render_qr_png(link, size)
    except (DataOverflowError, ValueError) as e:
        logger.warning(f"QR for table {table.number} rejected: {str(e)}")
        raise ValidationError("URL is too long to encode in a QR code")
    except Exception as e:
        logger.error(f"Failed to generate QR for table {table.number}: {str(e)}")
        raise InternalError("Failed to generate QR code")

    disposition = "attachment" if download else "inline"
    headers = dict(NO_CACHE_HEADERS)
    headers["Content-Disposition"] = f'{disposition}; filename="table-{table.number}-qr.png"'
    return Response(content=image, media_type="image/png", headers=headers)

@router.get("/{table_id}", response_model=Envelope[TableResponse])
async def get_table(table_id: int, manager: TableManager = Depends(get_table_manager)):
    return ok(manager.get_table(table_id))

@router.put("/{table_id}/status", response_model=Envelope[TableResponse])
async def update_table_status(
    table_id: int,
    status_update: TableStatusUpdate,
    manager: TableManager = Depends(get_table_manager),
    current_user: User = Depends(get_current_active_user)
):
    table = await manager.set_status(table_id, status_update.status)
    logger.info(f"Table {table.number} set to {table.status.value} by user {current_user.id}")
    return ok(table, message=f"Table status updated to {table.status.value}")

@router.post("", response_model=Envelope[TableResponse], status_code=status.HTTP_201_CREATED)
async def create_table(
    table: TableCreate,
    manager: TableManager = Depends(get_table_manager),
    current_user: User = Depends(get_current_admin)
):
    db_table = await manager.create_table(**table.model_dump())
    logger.info(f"Table {db_table.number} created by user {current_user.id}")
    return ok(db_table, message="Table created")

@router.put("/{table_id}", response_model=Envelope[TableResponse])
async def update_table(
    table_id: int,
    table_update: TableUpdate,
    manager: TableManager = Depends(get_table_manager),
    current_user: User = Depends(get_current_admin)
):
    db_table = await manager.update_table(table_id, **table_update.model_dump(exclude_unset=True))
    return ok(db_table, message="Table updated")

@router.delete("/{table_id}", response_model=Envelope[None])
async def delete_table(
    table_id: int,
    manager: TableManager = Depends(get_table_manager),
    current_user: User = Depends(get_current_admin)
):
    await manager.delete_table(table_id)
    logger.info(f"Table {table_id} deleted by user {current_user.id}")
    return ok(message="Table deleted")
