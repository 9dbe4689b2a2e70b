import base64
import html
import logging
from io import BytesIO
from typing import Iterable, Optional

import qrcode
from PIL import Image
from qrcode.constants import ERROR_CORRECT_M

from utils.config import settings

logger = logging.getLogger(__name__)

DEFAULT_QR_SIZE = 300


def customer_link(table_number: int, custom_url: Optional[str] = None, base_url: Optional[str] = None) -> str:
    """Link encoded in a table's QR code.

    `custom_url` replaces the link entirely; `base_url` only replaces the
    frontend origin.
    """
    if custom_url:
        return custom_url
    base = (base_url or settings.FRONTEND_URL).rstrip("/")
    return f"{base}/menu/{table_number}?src=qr"


def render_qr_png(link: str, size: int = DEFAULT_QR_SIZE) -> bytes:
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=10, border=2)
    qr.add_data(link)
    qr.make(fit=True)

    image = qr.make_image(fill_color="black", back_color="white").get_image().convert("RGB")
    if image.size != (size, size):
        image = image.resize((size, size), Image.NEAREST)

    output = BytesIO()
    image.save(output, format="PNG")
    return output.getvalue()


def render_qr_data_url(link: str, size: int = DEFAULT_QR_SIZE) -> str:
    encoded = base64.b64encode(render_qr_png(link, size)).decode("ascii")
    return f"data:image/png;base64,{encoded}"


_PRINT_PAGE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Table QR Codes</title>
<style>
  body {{ font-family: Arial, sans-serif; margin: 24px; }}
  h1 {{ text-align: center; }}
  .grid {{ display: grid; grid-template-columns: repeat(3, 1fr); gap: 24px; }}
  .card {{ border: 2px dashed #999; border-radius: 8px; padding: 16px; text-align: center; page-break-inside: avoid; }}
  .card h2 {{ margin: 0 0 8px; }}
  .card img {{ width: {size}px; height: {size}px; }}
  .card p {{ font-size: 11px; color: #555; word-break: break-all; }}
  @media print {{ .no-print {{ display: none; }} }}
</style>
</head>
<body>
<h1>{title}</h1>
<p class="no-print" style="text-align:center"><button onclick="window.print()">Print</button></p>
<div class="grid">
{cards}
</div>
</body>
</html>
"""

_PRINT_CARD = """<div class="card">
  <h2>Table {number}</h2>
  <img src="{image}" alt="QR code for table {number}">
  <p>Scan to view the menu and order</p>
  <p>{link}</p>
</div>"""


def render_print_page(tables: Iterable, size: int = DEFAULT_QR_SIZE, base_url: Optional[str] = None) -> str:
    """Printable HTML sheet with one QR card per table, three per row."""
    cards = []
    for table in tables:
        link = customer_link(table.number, base_url=base_url)
        cards.append(_PRINT_CARD.format(
            number=table.number,
            image=render_qr_data_url(link, size),
            link=html.escape(link),
        ))
    logger.info(f"Rendered QR print sheet for {len(cards)} tables")
    return _PRINT_PAGE.format(
        size=size,
        title=html.escape(f"{settings.RESTAURANT_NAME} - Table QR Codes"),
        cards="\n".join(cards),
    )
