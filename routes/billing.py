from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
import logging

from utils.database import get_db
from schemas.billing import SettleBillRequest, BillDetailResponse
from schemas.common import Envelope, ok
from services.billing import BillingManager
from services.events import EventBus, get_event_bus
from utils.pdf_generator import generate_bill_pdf
from utils.auth import get_current_cashier
from models.user import User

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/bills", tags=["billing"])


def get_billing_manager(db: Session = Depends(get_db), events: EventBus = Depends(get_event_bus)) -> BillingManager:
    return BillingManager(db, events)


@router.post("/generate/{order_id}", response_model=Envelope[BillDetailResponse])
async def generate_bill(order_id: int, response: Response, manager: BillingManager = Depends(get_billing_manager)):
    bill, created = await manager.generate_bill(order_id)
    if created:
        response.status_code = status.HTTP_201_CREATED
        return ok(bill, message="Bill generated successfully")
    return ok(bill, message="Bill already exists")


@router.post("/{bill_id}/settle", response_model=Envelope[BillDetailResponse])
async def settle_bill(
    bill_id: int,
    request: SettleBillRequest,
    manager: BillingManager = Depends(get_billing_manager),
    current_user: User = Depends(get_current_cashier)
):
    bill = await manager.settle_bill(
        bill_id,
        payment_method=request.payment_method,
        paid_amount=request.paid_amount,
        cashier_id=current_user.id,
        version=request.version,
    )
    return ok(bill, message="Bill settled successfully")


@router.get("", response_model=Envelope[List[BillDetailResponse]])
async def list_bills(
    is_paid: Optional[bool] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    manager: BillingManager = Depends(get_billing_manager)
):
    bills = manager.list_bills(is_paid=is_paid, start_date=start_date, end_date=end_date)
    logger.info(f"Retrieved {len(bills)} bills")
    return ok(bills)


@router.get("/order/{order_id}", response_model=Envelope[BillDetailResponse])
async def get_bill_for_order(order_id: int, manager: BillingManager = Depends(get_billing_manager)):
    return ok(manager.get_bill_for_order(order_id))


@router.get("/{bill_id}/pdf")
def download_bill_pdf(bill_id: int, manager: BillingManager = Depends(get_billing_manager)):
    bill = manager.get_bill(bill_id)
    pdf_buffer = generate_bill_pdf(bill)

    headers = {
        'Content-Disposition': f'attachment; filename="bill_{bill.bill_number}.pdf"'
    }
    return StreamingResponse(pdf_buffer, media_type='application/pdf', headers=headers)


@router.get("/{bill_id}", response_model=Envelope[BillDetailResponse])
async def get_bill(bill_id: int, manager: BillingManager = Depends(get_billing_manager)):
    return ok(manager.get_bill(bill_id))
