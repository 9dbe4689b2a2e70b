from io import BytesIO
from reportlab.pdfgen import canvas
from reportlab.lib.units import inch
from models.billing import Bill
from models.order_management import OrderItemStatus
from utils.config import settings
from utils.exceptions import InternalError
import logging

logger = logging.getLogger(__name__)

def _money(value) -> str:
    return f"Rs. {value or 0:.2f}"

def generate_bill_pdf(bill: Bill) -> BytesIO:
    """
    Render a bill as a 4" wide receipt for thermal printers.
    Cancelled items are left out; totals are printed as stored on the bill.
    """
    order = bill.order
    items = [item for item in (order.items if order else []) if item.status != OrderItemStatus.CANCELLED]

    buffer = BytesIO()
    receipt_width = 4 * inch
    receipt_height = (4.5 + 0.2 * len(items)) * inch
    c = canvas.Canvas(buffer, pagesize=(receipt_width, receipt_height))

    try:
        margin = 0.2 * inch
        y_pos = receipt_height - margin - 0.1 * inch

        # Business Header
        c.setFont("Helvetica-Bold", 14)
        c.drawCentredString(receipt_width / 2, y_pos, settings.RESTAURANT_NAME)
        y_pos -= 0.3 * inch

        # Bill Details
        c.setFont("Helvetica-Bold", 9)
        issued = bill.paid_at or bill.created_at
        c.drawString(margin, y_pos, f"Bill No: {bill.bill_number}")
        c.drawRightString(receipt_width - margin, y_pos, f"Date: {issued.strftime('%d-%m-%Y')}")
        y_pos -= 0.15 * inch
        c.setFont("Helvetica", 8)
        if order:
            c.drawString(margin, y_pos, f"Order: {order.order_number}")
            c.drawRightString(receipt_width - margin, y_pos, f"Table: {order.table_number}")
            y_pos -= 0.15 * inch
        c.drawString(margin, y_pos, f"Time: {issued.strftime('%I:%M %p')}")
        y_pos -= 0.2 * inch

        # Item Header
        c.setFont("Helvetica-Bold", 8)
        c.drawString(margin, y_pos, "DESCRIPTION")
        c.drawCentredString(receipt_width / 2, y_pos, "QTY")
        c.drawRightString(receipt_width - margin, y_pos, "AMOUNT")
        y_pos -= 0.15 * inch
        c.line(margin, y_pos, receipt_width - margin, y_pos)
        y_pos -= 0.15 * inch

        # Items List
        c.setFont("Helvetica", 8)
        for item in items:
            item_name = item.menu_item.name if item.menu_item else "Unknown Item"
            if len(item_name) > 25:
                item_name = item_name[:22] + "..."
            c.drawString(margin + 0.1 * inch, y_pos, item_name)
            c.drawCentredString(receipt_width / 2, y_pos, str(item.quantity))
            c.drawRightString(receipt_width - margin - 0.1 * inch, y_pos, _money(item.total))
            y_pos -= 0.2 * inch

        # Totals
        c.line(margin, y_pos, receipt_width - margin, y_pos)
        y_pos -= 0.15 * inch
        c.drawString(margin, y_pos, "Subtotal:")
        c.drawRightString(receipt_width - margin, y_pos, _money(bill.subtotal))
        y_pos -= 0.15 * inch
        c.drawString(margin, y_pos, "Tax:")
        c.drawRightString(receipt_width - margin, y_pos, _money(bill.tax))
        y_pos -= 0.15 * inch
        if bill.discount and bill.discount > 0:
            c.drawString(margin, y_pos, "Discount:")
            c.drawRightString(receipt_width - margin, y_pos, f"-{_money(bill.discount)}")
            y_pos -= 0.15 * inch
        c.setFont("Helvetica-Bold", 9)
        c.drawString(margin, y_pos, "NET TOTAL:")
        c.drawRightString(receipt_width - margin, y_pos, _money(bill.total_amount))
        y_pos -= 0.25 * inch

        # Payment Info
        c.setFont("Helvetica", 8)
        if bill.is_paid:
            c.drawString(margin, y_pos, f"Paid by {bill.payment_method.value}: {_money(bill.paid_amount)}")
            y_pos -= 0.15 * inch
            c.drawString(margin, y_pos, f"Change: {_money(bill.change_amount)}")
        else:
            c.drawString(margin, y_pos, "Status: UNPAID")
        y_pos -= 0.2 * inch

        # Footer
        c.line(margin, y_pos, receipt_width - margin, y_pos)
        y_pos -= 0.15 * inch
        c.drawCentredString(receipt_width / 2, y_pos, "Thank you for your visit!")

        c.showPage()
        c.save()
        buffer.seek(0)
        return buffer

    except Exception as e:
        logger.error(f"Error generating PDF for bill {bill.id}: {str(e)}")
        raise InternalError("Failed to generate bill PDF") from e
