from fastapi import APIRouter, Depends, File, UploadFile, status
from sqlalchemy.orm import Session
from typing import List, Optional
import base64

from utils.config import settings
from utils.database import get_db, transaction
from utils.exceptions import AppError, NotFoundError, ValidationError
from models.menu_management import MenuItem
from models.order_management import OrderItem
from models.user import User
from schemas.common import Envelope, ok
from schemas.menu_management import MenuItemCreate, MenuItemUpdate, MenuItemResponse, ImageUploadResponse
from utils.auth import get_current_admin
import logging
# Setup logging
logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/menu", tags=["menu_management"])

MAX_IMAGE_BYTES = 500 * 1024


def _get_menu_item(db: Session, item_id: int) -> MenuItem:
    item = db.get(MenuItem, item_id)
    if not item:
        raise NotFoundError("Menu item not found")
    return item


@router.get("", response_model=Envelope[List[MenuItemResponse]])
async def list_menu_items(
    category: Optional[str] = None,
    available: Optional[bool] = None,
    db: Session = Depends(get_db)
):
    query = db.query(MenuItem)
    if category:
        query = query.filter(MenuItem.category == category)
    if available is not None:
        query = query.filter(MenuItem.is_available == available)
    items = query.order_by(MenuItem.category, MenuItem.name).all()
    return ok(items)


@router.post("/upload-image", response_model=ImageUploadResponse)
async def upload_menu_image(
    image: UploadFile = File(...),
    current_user: User = Depends(get_current_admin)
):
    if settings.STORAGE_MODE != "local":
        # External object storage is not wired into this service
        raise AppError("External image storage is not configured")

    if not image.content_type or not image.content_type.startswith("image/"):
        raise ValidationError("Only image files are allowed")

    content = await image.read()
    if not content:
        raise ValidationError("No image file provided")
    if len(content) > MAX_IMAGE_BYTES:
        raise ValidationError("Image must be 500KB or smaller")

    encoded = base64.b64encode(content).decode("ascii")
    logger.info(f"Image {image.filename} converted to base64 ({len(encoded) / 1024:.2f} KB)")
    return {"success": True, "image_url": f"data:{image.content_type};base64,{encoded}", "size": len(encoded)}


@router.get("/{item_id}", response_model=Envelope[MenuItemResponse])
async def get_menu_item(item_id: int, db: Session = Depends(get_db)):
    return ok(_get_menu_item(db, item_id))


@router.post("", response_model=Envelope[MenuItemResponse], status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    item: MenuItemCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    with transaction(db, "create menu item"):
        db_item = MenuItem(**item.model_dump())
        db.add(db_item)
    db.refresh(db_item)
    logger.info(f"Menu item {db_item.id} ({db_item.name}) created by user {current_user.id}")
    return ok(db_item, message="Menu item created")


@router.put("/{item_id}", response_model=Envelope[MenuItemResponse])
async def update_menu_item(
    item_id: int,
    item_update: MenuItemUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    with transaction(db, "update menu item"):
        db_item = _get_menu_item(db, item_id)
        for field, value in item_update.model_dump(exclude_unset=True).items():
            setattr(db_item, field, value)
    db.refresh(db_item)
    logger.info(f"Menu item {item_id} updated by user {current_user.id}")
    return ok(db_item, message="Menu item updated")


@router.delete("/{item_id}", response_model=Envelope[None])
async def delete_menu_item(
    item_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_admin)
):
    with transaction(db, "delete menu item"):
        db_item = _get_menu_item(db, item_id)
        # Past orders keep pointing at the item, so it can only be hidden
        referenced = db.query(OrderItem).filter(OrderItem.menu_item_id == item_id).first() is not None
        if referenced:
            db_item.is_available = False
        else:
            db.delete(db_item)

    if referenced:
        logger.info(f"Menu item {item_id} is referenced by orders, marked unavailable")
        return ok(message="Menu item is used by existing orders and was marked unavailable")
    logger.info(f"Menu item {item_id} deleted by user {current_user.id}")
    return ok(message="Menu item deleted")
